"""Model descriptions: which served model, and optionally which version, a request targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from . import protos


@dataclass(frozen=True)
class ModelDescription:
    """
    Description of a model.

    A plain model name is accepted anywhere a description is expected, so a
    description only needs to be built explicitly to pin a version or a
    version label:

        client.predict("cat.jpg", "resnet")
        client.predict("cat.jpg", ModelDescription("resnet", version=3))
    """
    name: str
    version: Optional[int] = None
    label: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("model name must be a non-empty string")
        if self.version is not None and self.label is not None:
            raise ValueError("a model may be pinned by version or by label, not both")

    @classmethod
    def coerce(cls, value: "ModelLike") -> "ModelDescription":
        """Turn a name, a (name, version) pair or a description into a description."""
        if isinstance(value, ModelDescription):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, tuple) and len(value) == 2:
            name, version = value
            return cls(name, None if version is None else int(version))
        raise TypeError(f"cannot describe a model with {value!r}")

    def to_model_spec(self, signature_name: str) -> protos.ModelSpec:
        spec = protos.ModelSpec(name=self.name, signature_name=signature_name)
        if self.version is not None:
            spec.version.SetInParent()
            spec.version.value = self.version
        elif self.label is not None:
            spec.version_label = self.label
        return spec


ModelLike = Union[str, Tuple[str, Optional[int]], ModelDescription]


@dataclass(frozen=True)
class ServedModel:
    """A model entry of the server's model config list."""
    name: str
    base_path: str
    platform: str = "tensorflow"

    @classmethod
    def coerce(cls, value: Union["ServedModel", Tuple[str, str]]) -> "ServedModel":
        if isinstance(value, ServedModel):
            return value
        if isinstance(value, tuple) and len(value) == 2:
            return cls(*value)
        raise TypeError(f"cannot describe a served model with {value!r}")

    def to_proto(self) -> protos.ModelConfig:
        return protos.ModelConfig(
            name=self.name,
            base_path=self.base_path,
            model_platform=self.platform,
        )
