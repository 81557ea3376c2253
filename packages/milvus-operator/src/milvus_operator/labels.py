"""
Label keys and owner back-reference helpers for objects owned by a Milvus CR.
"""

from milvus_protocols import Milvus, ObjectMeta, OwnerReference

APP_LABEL_NAME = "app.kubernetes.io/name"
APP_LABEL_INSTANCE = "app.kubernetes.io/instance"
APP_LABEL_COMPONENT = "app.kubernetes.io/component"
APP_LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"

APP_NAME = "milvus"
MANAGED_BY = "milvus-operator"


def instance_labels(milvus: Milvus) -> dict[str, str]:
    """Selector labels shared by every object of one Milvus instance."""
    return {
        APP_LABEL_NAME: APP_NAME,
        APP_LABEL_INSTANCE: milvus.metadata.name,
    }


def component_labels(milvus: Milvus, component_name: str) -> dict[str, str]:
    return {**instance_labels(milvus), APP_LABEL_COMPONENT: component_name}


def controller_reference(milvus: Milvus) -> OwnerReference:
    return OwnerReference(
        api_version=milvus.api_version,
        kind=milvus.kind,
        name=milvus.metadata.name,
        uid=milvus.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )


def _refers_to(ref: OwnerReference, milvus: Milvus) -> bool:
    if ref.kind != milvus.kind:
        return False
    if milvus.metadata.uid:
        return ref.uid == milvus.metadata.uid
    return ref.name == milvus.metadata.name


def is_controlled_by(meta: ObjectMeta, milvus: Milvus) -> bool:
    """True if meta carries a controller back-reference to milvus."""
    if meta.namespace != milvus.metadata.namespace:
        return False
    return any(ref.controller and _refers_to(ref, milvus) for ref in meta.owner_references)


def get_controller(meta: ObjectMeta) -> OwnerReference | None:
    for ref in meta.owner_references:
        if ref.controller:
            return ref
    return None


def object_key(meta: ObjectMeta) -> str:
    return f"{meta.namespace}/{meta.name}"
