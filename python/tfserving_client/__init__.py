"""
tfserving-client - Client SDK for TensorFlow Serving model servers.

This module provides the main public API:

- ServingClientBuilder: Validates connection parameters and connects
- ServingClient: Synchronous gRPC client
- AsyncServingClient: Asynchronous gRPC client
- Payload: Feature values for classification and regression
- ModelDescription: Model name with optional version

Example usage:

    from tfserving_client import ServingClient

    client = ServingClient.builder().hostname("localhost").port(8500).build()

    result = client.predict_with_preprocessing(
        "cat.jpg", "resnet", lambda p: p / 255.0
    )
    print(result.max_index, result.probabilities[result.max_index])
"""

from .client import (
    AsyncServingClient,
    ServingClient,
    ServingClientBuilder,
)
from .config import ClientConfig, DEFAULT_SIGNATURE_NAME
from .exceptions import (
    ConfigError,
    DecodeError,
    ProtocolError,
    ServerError,
    ServingClientError,
    ServingConnectionError,
    UnimplementedError,
)
from .image import (
    ArrayImage,
    BytesImage,
    ImageSource,
    InMemoryImage,
    PathImage,
    as_image_source,
)
from .model import ModelDescription, ServedModel
from .payload import Payload, PayloadKind, build_example_input, encode_feature, encode_features
from .results import (
    ClassificationResult,
    ClassScore,
    InferenceResult,
    IOSpec,
    ModelMetadata,
    ModelVersionStatus,
    PredictionResult,
    RegressionResult,
    SignatureInfo,
)
from .tensor import build_image_tensor, make_ndarray, make_tensor_proto
from .transport import (
    AsyncChannel,
    AsyncGrpcTransport,
    AsyncTransport,
    Channel,
    GrpcTransport,
    Transport,
)

__version__ = "0.1.0"

__all__ = [
    # Clients
    "ServingClient",
    "AsyncServingClient",
    "ServingClientBuilder",
    "ClientConfig",
    "DEFAULT_SIGNATURE_NAME",

    # Requests
    "Payload",
    "PayloadKind",
    "encode_feature",
    "encode_features",
    "build_example_input",
    "ModelDescription",
    "ServedModel",

    # Images and tensors
    "ImageSource",
    "PathImage",
    "BytesImage",
    "InMemoryImage",
    "ArrayImage",
    "as_image_source",
    "build_image_tensor",
    "make_tensor_proto",
    "make_ndarray",

    # Results
    "PredictionResult",
    "ClassificationResult",
    "ClassScore",
    "RegressionResult",
    "InferenceResult",
    "ModelMetadata",
    "SignatureInfo",
    "IOSpec",
    "ModelVersionStatus",

    # Transports
    "Transport",
    "Channel",
    "AsyncTransport",
    "AsyncChannel",
    "GrpcTransport",
    "AsyncGrpcTransport",

    # Exceptions
    "ServingClientError",
    "ConfigError",
    "ServingConnectionError",
    "DecodeError",
    "ProtocolError",
    "UnimplementedError",
    "ServerError",

    # Version
    "__version__",
]
