"""
Decoded results returned by the serving client.

Each result type knows how to build itself from the matching response
message and raises ProtocolError when the response does not have the shape
it expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from . import protos
from .exceptions import ProtocolError
from .tensor import dtype_name, make_ndarray


@dataclass
class PredictionResult:
    """Result of prediction."""
    probabilities: List[float]
    max_index: int

    @classmethod
    def from_response(cls, response: protos.PredictResponse) -> "PredictionResult":
        outputs = response.outputs

        if "probabilities" not in outputs:
            raise ProtocolError("probabilities not available from the server response")
        probs = outputs["probabilities"]

        if "classes" not in outputs:
            raise ProtocolError("classes not available from the server response")
        classes = outputs["classes"]

        if classes.dtype != protos.DT_INT64:
            raise ProtocolError(
                "classes has unexpected data type, should be DT_INT64, "
                f"got {dtype_name(classes.dtype)}"
            )

        dims = [d.size for d in classes.tensor_shape.dim]
        if dims != [1]:
            raise ProtocolError(f"number of classes unexpected, expected shape [1], got {dims}")

        max_index = make_ndarray(classes).reshape(-1)[0]
        probabilities = make_ndarray(probs).reshape(-1)

        return cls(
            probabilities=[float(p) for p in probabilities],
            max_index=int(max_index),
        )


@dataclass
class ClassScore:
    """One labelled score of a classification."""
    label: str
    score: float


@dataclass
class ClassificationResult:
    """Classes and scores, one list per example in the request."""
    classifications: List[List[ClassScore]] = field(default_factory=list)

    @classmethod
    def from_proto(cls, result: protos.ClassificationResult) -> "ClassificationResult":
        return cls(classifications=[
            [ClassScore(label=c.label, score=c.score) for c in classifications.classes]
            for classifications in result.classifications
        ])

    def top(self, example: int = 0) -> Optional[ClassScore]:
        """Highest scoring class of an example, if any."""
        classes = self.classifications[example] if example < len(self.classifications) else []
        return max(classes, key=lambda c: c.score) if classes else None


@dataclass
class RegressionResult:
    """Regressed values, one per example in the request."""
    values: List[float] = field(default_factory=list)

    @classmethod
    def from_proto(cls, result: protos.RegressionResult) -> "RegressionResult":
        return cls(values=[r.value for r in result.regressions])


@dataclass
class InferenceResult:
    """Result of one task of a multi-inference request."""
    model_name: str
    signature_name: str
    classification: Optional[ClassificationResult] = None
    regression: Optional[RegressionResult] = None

    @classmethod
    def from_proto(cls, result: protos.InferenceResult) -> "InferenceResult":
        kind = result.WhichOneof("result")
        return cls(
            model_name=result.model_spec.name,
            signature_name=result.model_spec.signature_name,
            classification=(
                ClassificationResult.from_proto(result.classification_result)
                if kind == "classification_result" else None
            ),
            regression=(
                RegressionResult.from_proto(result.regression_result)
                if kind == "regression_result" else None
            ),
        )


@dataclass
class IOSpec:
    """Specification for model input or output."""
    name: str
    dtype: str
    shape: Optional[List[int]]

    @classmethod
    def from_proto(cls, name: str, info: protos.TensorInfo) -> "IOSpec":
        shape = None
        if not info.tensor_shape.unknown_rank:
            shape = [d.size for d in info.tensor_shape.dim]
        return cls(name=name, dtype=dtype_name(info.dtype), shape=shape)


@dataclass
class SignatureInfo:
    """A named entry point of a served model."""
    name: str
    method_name: str
    inputs: Dict[str, IOSpec] = field(default_factory=dict)
    outputs: Dict[str, IOSpec] = field(default_factory=dict)


@dataclass
class ModelMetadata:
    """Metadata about a model."""
    name: str
    version: Optional[int]
    signatures: Dict[str, SignatureInfo] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: protos.GetModelMetadataResponse) -> "ModelMetadata":
        spec = response.model_spec
        version = spec.version.value if spec.HasField("version") else None

        if "signature_def" not in response.metadata:
            raise ProtocolError("signature_def not available from the server response")
        packed = response.metadata["signature_def"]

        type_name = packed.type_url.rsplit("/", 1)[-1]
        if type_name != "tensorflow.serving.SignatureDefMap":
            raise ProtocolError(f"signature_def has unexpected type {type_name!r}")
        signature_map = protos.SignatureDefMap.FromString(packed.value)

        signatures = {}
        for sig_name, sig in signature_map.signature_def.items():
            signatures[sig_name] = SignatureInfo(
                name=sig_name,
                method_name=sig.method_name,
                inputs={n: IOSpec.from_proto(n, i) for n, i in sig.inputs.items()},
                outputs={n: IOSpec.from_proto(n, o) for n, o in sig.outputs.items()},
            )
        return cls(name=spec.name, version=version, signatures=signatures)


@dataclass
class ModelVersionStatus:
    """Load state of one version of a model."""
    version: int
    state: str
    error_code: str = "OK"
    error_message: str = ""

    @property
    def available(self) -> bool:
        return self.state == "AVAILABLE"

    @classmethod
    def from_proto(cls, status: protos.ModelVersionStatus) -> "ModelVersionStatus":
        return cls(
            version=status.version,
            state=_enum_name(protos.ModelVersionState, status.state),
            error_code=_enum_name(protos.ErrorCode, status.status.error_code),
            error_message=status.status.error_message,
        )


def _enum_name(enum_type, value: int) -> str:
    try:
        return enum_type.Name(value)
    except ValueError:
        return str(value)
