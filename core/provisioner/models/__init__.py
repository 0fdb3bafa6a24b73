"""Models module - model catalog and remote metadata."""

from provisioner.models.catalog import (
    DOWNLOADABLE_MODELS,
    EMBEDDINGS_MODEL,
    GRANITE_LARGE,
    GRANITE_SMALL,
    CatalogModel,
    ModelSize,
    models_for_size,
    standard_name,
)
from provisioner.models.metadata import (
    DEFAULT_MODEL_INFO,
    MetadataResolver,
    ModelInfo,
    RemoteModelLibrary,
)

__all__ = [
    "DOWNLOADABLE_MODELS",
    "EMBEDDINGS_MODEL",
    "GRANITE_LARGE",
    "GRANITE_SMALL",
    "CatalogModel",
    "ModelSize",
    "models_for_size",
    "standard_name",
    "DEFAULT_MODEL_INFO",
    "MetadataResolver",
    "ModelInfo",
    "RemoteModelLibrary",
]
