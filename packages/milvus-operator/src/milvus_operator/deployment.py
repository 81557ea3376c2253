"""
Deployment updater: drives one component's Deployment toward its desired shape.

DeploymentUpdater.update() mutates a Deployment in place. Each rule touches
its own fields and is idempotent, so applying the updater twice to the same
inputs changes nothing the second time:

1. controller back-reference to the Milvus CR (the only fatal rule)
2. main container args: launcher + user command or `milvus run <component>`
3. replicas: -1 preserves the current count (0 is resumed to 1), else overwrite
4. image: gated by the rolling-update dependency graph
5. volumes: config + tools always, embedded queue data volume on demand
6. host networking and DNS policy copied verbatim
7. init containers: one `config` container, then user extras; the config
   container is re-rendered only when another template field changed in
   this pass or update_tool_image is set
"""

import logging

from milvus_protocols import (
    Container,
    Deployment,
    ImageUpdateMode,
    Milvus,
    MilvusMode,
    ObjectMeta,
    PersistenceSpec,
    PodTemplate,
    Volume,
    VolumeMount,
)

from milvus_operator.components import (
    STANDALONE,
    MilvusComponent,
    component_spec,
    desired_image,
)
from milvus_operator.deploy_status import MAIN_CONTAINER_NAME
from milvus_operator.errors import OwnerReferenceError
from milvus_operator.labels import (
    component_labels,
    controller_reference,
    get_controller,
    object_key,
)
from milvus_operator.rolling import rolling_update_image_dependency_ready

logger = logging.getLogger(__name__)

LAUNCHER_ARGS = ["/milvus/tools/run.sh"]

CONFIG_CONTAINER_NAME = "config"
CONFIG_VOLUME_NAME = "milvus-config"
TOOLS_VOLUME_NAME = "milvus-tools"
DATA_VOLUME_NAME = "milvus-data"

CONFIG_MOUNT_PATH = "/milvus/configs/operator"
TOOLS_MOUNT_PATH = "/milvus/tools"
EMBEDDED_QUEUE_PERSIST_PATH = "/var/lib/milvus/data"


def deployment_name(milvus: Milvus, component: MilvusComponent) -> str:
    return f"{milvus.metadata.name}-milvus-{component.name}"


def new_deployment(milvus: Milvus, component: MilvusComponent) -> Deployment:
    """Empty Deployment skeleton for a component (not yet updated)."""
    return Deployment(
        metadata=ObjectMeta(
            name=deployment_name(milvus, component),
            namespace=milvus.metadata.namespace,
        )
    )


def _upsert_by_name(items: list, item) -> None:
    for i, existing in enumerate(items):
        if existing.name == item.name:
            items[i] = item
            return
    items.append(item)


def _remove_by_name(items: list, name: str) -> None:
    items[:] = [i for i in items if i.name != name]


class DeploymentUpdater:
    """
    Computes the desired Deployment shape for one component of a Milvus CR.

    Attributes:
        milvus: The CR, including its status (deploy status, current image)
        component: Component this updater renders
        tool_image: Image of the config init container

    Example:
        updater = DeploymentUpdater(milvus, PROXY, tool_image=settings.tool_image)
        deployment = new_deployment(milvus, PROXY)
        updater.update(deployment)
    """

    def __init__(
        self, milvus: Milvus, component: MilvusComponent, tool_image: str
    ) -> None:
        self.milvus = milvus
        self.component = component
        self.tool_image = tool_image
        self.spec = component_spec(milvus.spec, component)

    def update(self, deployment: Deployment) -> None:
        """
        Apply every rule to deployment.

        Raises:
            OwnerReferenceError: If the controller reference cannot be set.
        """
        self.set_controller_reference(deployment)
        labels = component_labels(self.milvus, self.component.name)
        deployment.metadata.labels.update(labels)

        template = deployment.spec.template
        before = template.model_copy(deep=True)
        template.labels.update(labels)

        self.update_main_container(template)
        deployment.spec.replicas = self.desired_replicas(deployment.spec.replicas)
        self.update_image(template)
        self.update_volumes(template)
        template.spec.host_network = self.milvus.spec.components.host_network
        template.spec.dns_policy = self.milvus.spec.components.dns_policy
        self.update_init_containers(template, before)

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def set_controller_reference(self, deployment: Deployment) -> None:
        meta = deployment.metadata
        owner = object_key(self.milvus.metadata)
        if meta.namespace != self.milvus.metadata.namespace:
            raise OwnerReferenceError(
                owner, object_key(meta), "cross-namespace owner references are disallowed"
            )
        ref = controller_reference(self.milvus)
        current = get_controller(meta)
        if current is not None and (current.kind, current.name) != (ref.kind, ref.name):
            raise OwnerReferenceError(
                owner,
                object_key(meta),
                f"already controlled by {current.kind} {current.name}",
            )
        meta.owner_references = [r for r in meta.owner_references if not r.controller]
        meta.owner_references.append(ref)

    def main_container(self, template: PodTemplate) -> Container:
        containers = template.spec.containers
        for container in containers:
            if container.name == MAIN_CONTAINER_NAME:
                return container
        container = Container(name=MAIN_CONTAINER_NAME)
        containers.insert(0, container)
        return container

    def update_main_container(self, template: PodTemplate) -> None:
        container = self.main_container(template)
        command = self.spec.commands or ["milvus", "run", self.component.run_name]
        container.args = LAUNCHER_ARGS + list(command)

    def desired_replicas(self, current: int | None) -> int:
        desired = self.spec.replicas if self.spec.replicas is not None else 1
        if desired == -1:
            # externally managed; only resume a workload parked at 0
            if current is None or current == 0:
                return 1
            return current
        return desired

    def update_image(self, template: PodTemplate) -> None:
        container = self.main_container(template)
        desired = desired_image(self.milvus.spec, self.component)
        mode = self.milvus.spec.components.image_update_mode

        if not container.image:
            # new workload: every mode starts on the desired image
            container.image = desired
            return
        if mode == ImageUpdateMode.DISABLED:
            return
        if rolling_update_image_dependency_ready(self.milvus, self.component):
            container.image = desired
            return

        pinned = self.last_deployed_image() or container.image
        if pinned != desired:
            logger.debug(
                f"{object_key(self.milvus.metadata)}: {self.component} waits on "
                f"dependencies, pinned to {pinned}"
            )
        container.image = pinned

    def last_deployed_image(self) -> str:
        record = self.milvus.status.components_deploy_status.get(self.component.name)
        if record is not None and record.image:
            return record.image
        return self.milvus.status.current_image

    def local_queue_persistence(self) -> PersistenceSpec | None:
        """Persistence of an embedded queue whose log lives on this workload."""
        if self.milvus.spec.mode != MilvusMode.STANDALONE or self.component != STANDALONE:
            return None
        queue = self.milvus.spec.dependencies.embedded_queue()
        if queue is None or not queue.persistence.enabled:
            return None
        return queue.persistence

    def update_volumes(self, template: PodTemplate) -> None:
        volumes = template.spec.volumes
        mounts = self.main_container(template).volume_mounts

        _upsert_by_name(
            volumes,
            Volume(name=CONFIG_VOLUME_NAME, config_map_name=self.milvus.metadata.name),
        )
        _upsert_by_name(volumes, Volume(name=TOOLS_VOLUME_NAME, empty_dir=True))
        _upsert_by_name(
            mounts,
            VolumeMount(name=CONFIG_VOLUME_NAME, mount_path=CONFIG_MOUNT_PATH, read_only=True),
        )
        _upsert_by_name(
            mounts, VolumeMount(name=TOOLS_VOLUME_NAME, mount_path=TOOLS_MOUNT_PATH)
        )

        persistence = self.local_queue_persistence()
        if persistence is not None:
            claim = persistence.existing_claim or f"{self.milvus.metadata.name}-data"
            _upsert_by_name(volumes, Volume(name=DATA_VOLUME_NAME, claim_name=claim))
            _upsert_by_name(
                mounts,
                VolumeMount(name=DATA_VOLUME_NAME, mount_path=EMBEDDED_QUEUE_PERSIST_PATH),
            )
        else:
            _remove_by_name(volumes, DATA_VOLUME_NAME)
            _remove_by_name(mounts, DATA_VOLUME_NAME)

    def render_config_container(self) -> Container:
        return Container(
            name=CONFIG_CONTAINER_NAME,
            image=self.tool_image,
            args=["/cp", "/run.sh,/merge", "/milvus/tools/run.sh,/milvus/tools/merge"],
            volume_mounts=[
                VolumeMount(name=TOOLS_VOLUME_NAME, mount_path=TOOLS_MOUNT_PATH)
            ],
        )

    def update_init_containers(self, template: PodTemplate, before: PodTemplate) -> None:
        existing = next(
            (c for c in template.spec.init_containers if c.name == CONFIG_CONTAINER_NAME),
            None,
        )
        extras = [c.model_copy(deep=True) for c in self.spec.init_containers]
        config = existing if existing is not None else self.render_config_container()
        template.spec.init_containers = [config] + extras

        force = self.milvus.spec.components.update_tool_image
        if existing is not None and (force or template != before):
            template.spec.init_containers[0] = self.render_config_container()


def update_deployment(deployment: Deployment, updater: DeploymentUpdater) -> None:
    """Apply updater to deployment in place. See DeploymentUpdater.update."""
    updater.update(deployment)
