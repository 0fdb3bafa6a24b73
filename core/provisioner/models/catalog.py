"""
Fixed catalog of models the provisioner knows how to install.
Each size preset pairs a Granite chat model with the shared embeddings model.
"""

from enum import Enum

from pydantic import BaseModel


class ModelSize(str, Enum):
    """Size presets offered to the user."""

    LARGE = "large"
    SMALL = "small"


class CatalogModel(BaseModel):
    """A downloadable model from the catalog."""

    model: str  # Ollama name: "granite3.1-dense:8b"
    title: str
    description: str = ""


GRANITE_LARGE = CatalogModel(
    model="granite3.1-dense:8b",
    title="Granite 3.1 Dense 8B",
    description="For machines with 32GB of memory and a fast GPU",
)

GRANITE_SMALL = CatalogModel(
    model="granite3.1-dense:2b",
    title="Granite 3.1 Dense 2B",
    description="For machines with less than 32GB of memory and slow graphics",
)

EMBEDDINGS_MODEL = CatalogModel(
    model="nomic-embed-text:latest",
    title="Nomic Embed Text",
    description="Embeddings for codebase retrieval",
)

# Models whose status is reported to the front end
DOWNLOADABLE_MODELS = [
    GRANITE_LARGE.model,
    GRANITE_SMALL.model,
    EMBEDDINGS_MODEL.model,
]


def models_for_size(size: ModelSize | str) -> list[str]:
    """Ordered list of model names to pull for a size preset."""
    granite = GRANITE_LARGE if ModelSize(size) == ModelSize.LARGE else GRANITE_SMALL
    return [granite.model, EMBEDDINGS_MODEL.model]


def standard_name(name: str) -> str:
    """Normalize a model name the way the server lists it ("name:tag")."""
    return name if ":" in name else f"{name}:latest"
