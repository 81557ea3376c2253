"""Command line interface of the Milvus operator."""
