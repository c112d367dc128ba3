"""
TensorFlow Serving client SDK

Provides synchronous and asynchronous clients for sending classification,
regression and prediction requests to a TensorFlow Serving model server,
plus the model management calls of its ModelService.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import grpc
import numpy as np

from . import protos
from .config import ClientConfig
from .exceptions import ServerError, ServingConnectionError
from .image import as_image_source
from .model import ModelDescription, ModelLike, ServedModel
from .payload import build_example_input
from .results import (
    ClassificationResult,
    InferenceResult,
    ModelMetadata,
    ModelVersionStatus,
    PredictionResult,
    RegressionResult,
)
from .tensor import PixelFn, build_image_tensor, decode_outputs, identity, make_tensor_proto
from .transport import (
    AsyncChannel,
    AsyncGrpcTransport,
    AsyncTransport,
    Channel,
    GrpcTransport,
    Transport,
)

logger = logging.getLogger(__name__)

IMAGE_INPUT_NAME = "input"

_TASK_METHODS = {
    "classify": protos.CLASSIFY_METHOD_NAME,
    "regress": protos.REGRESS_METHOD_NAME,
}

FeatureMap = Mapping[str, Any]
Task = Tuple[ModelLike, str]


def _optional_str(name: str, value: Optional[str]) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise TypeError(f"{name} must be a str or None, got {type(value).__name__}")
    return value


class ServingClientBuilder:
    """
    Builder used to build the client.

    Required parameters are hostname and port. ``signature_name`` is
    optional, and defaults to "serving_default".

    Example:
        client = (
            ServingClient.builder()
            .hostname("localhost")
            .port(8500)
            .build()
        )

    Nothing touches the network until ``build`` is called, and ``build``
    validates the configuration before connecting. A builder is not consumed
    by ``build``: after a ConfigError it can be completed and built again.
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self._config = config if config is not None else ClientConfig()
        self._transport: Union[Transport, AsyncTransport, None] = None

    @classmethod
    def from_env(cls, prefix: str = "TFSERVING_") -> "ServingClientBuilder":
        """Start from the configuration found in the environment."""
        return cls(ClientConfig.from_env(prefix))

    @property
    def config(self) -> ClientConfig:
        return self._config

    def hostname(self, hostname: Optional[str]) -> "ServingClientBuilder":
        """Set the hostname for the client; None leaves it unset."""
        self._config.hostname = _optional_str("hostname", hostname)
        return self

    def port(self, port: int) -> "ServingClientBuilder":
        """Set the port for the client."""
        self._config.port = port
        return self

    def signature_name(self, signature_name: Optional[str]) -> "ServingClientBuilder":
        """Set the signature name; None restores the default."""
        self._config.signature_name = _optional_str("signature_name", signature_name)
        return self

    def connect_timeout(self, seconds: Optional[float]) -> "ServingClientBuilder":
        self._config.connect_timeout = seconds
        return self

    def timeout(self, seconds: Optional[float]) -> "ServingClientBuilder":
        self._config.timeout = seconds
        return self

    def transport(self, transport: Union[Transport, AsyncTransport]) -> "ServingClientBuilder":
        """Use ``transport`` instead of the default gRPC transport."""
        self._transport = transport
        return self

    def build(self) -> "ServingClient":
        """
        Build a connected ServingClient.

        Raises:
            ConfigError: if hostname or port is missing or invalid
            ServingConnectionError: if the server cannot be reached
        """
        address, signature_name = self._config.resolve()

        transport = self._transport
        if transport is None:
            transport = GrpcTransport(
                connect_timeout=self._config.connect_timeout,
                timeout=self._config.timeout,
            )
        elif not isinstance(transport, Transport):
            raise TypeError("build() needs a synchronous Transport, use build_async()")

        try:
            channel = transport.connect(address)
        except ServingConnectionError:
            raise
        except (grpc.RpcError, OSError) as e:
            raise ServingConnectionError(f"failed to connect to {address}: {e}") from e

        logger.info("Connected to %s (signature %r)", address, signature_name)
        return ServingClient(channel, signature_name, address)

    async def build_async(self) -> "AsyncServingClient":
        """Build a connected AsyncServingClient; same errors as ``build``."""
        address, signature_name = self._config.resolve()

        transport = self._transport
        if transport is None:
            transport = AsyncGrpcTransport(
                connect_timeout=self._config.connect_timeout,
                timeout=self._config.timeout,
            )
        elif not isinstance(transport, AsyncTransport):
            raise TypeError("build_async() needs an AsyncTransport, use build()")

        try:
            channel = await transport.connect(address)
        except ServingConnectionError:
            raise
        except (grpc.RpcError, OSError) as e:
            raise ServingConnectionError(f"failed to connect to {address}: {e}") from e

        logger.info("Connected to %s (signature %r)", address, signature_name)
        return AsyncServingClient(channel, signature_name, address)


class _ClientBase:
    """Request construction shared by the synchronous and asynchronous clients."""

    def __init__(self, channel, signature_name: str, address: str):
        self._channel = channel
        self._signature_name = signature_name
        self._address = address
        self._closed = False

    @property
    def signature_name(self) -> str:
        return self._signature_name

    @property
    def address(self) -> str:
        return self._address

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(address={self._address!r}, "
            f"signature_name={self._signature_name!r})"
        )

    def _check_open(self) -> None:
        if self._closed:
            raise ServingConnectionError(f"client for {self._address} is closed")

    def _model_spec(self, model: ModelLike) -> protos.ModelSpec:
        return ModelDescription.coerce(model).to_model_spec(self._signature_name)

    def _classification_request(self, model: ModelLike, feature_map: FeatureMap):
        return protos.ClassificationRequest(
            model_spec=self._model_spec(model),
            input=build_example_input(feature_map),
        )

    def _regression_request(self, model: ModelLike, feature_map: FeatureMap):
        return protos.RegressionRequest(
            model_spec=self._model_spec(model),
            input=build_example_input(feature_map),
        )

    def _image_predict_request(self, image: Any, model: ModelLike, preprocess: PixelFn):
        # Decode before building anything; an unreadable image must not reach the server
        img = as_image_source(image).to_image()
        tensor = build_image_tensor(img, preprocess)

        request = protos.PredictRequest(model_spec=self._model_spec(model))
        request.inputs[IMAGE_INPUT_NAME].CopyFrom(tensor)
        logger.debug(
            "Predict request for %s with %s tensor %s",
            request.model_spec.name,
            IMAGE_INPUT_NAME,
            [d.size for d in tensor.tensor_shape.dim],
        )
        return request

    def _tensors_predict_request(
        self,
        model: ModelLike,
        inputs: Mapping[str, Any],
        output_filter: Optional[Sequence[str]],
    ):
        request = protos.PredictRequest(model_spec=self._model_spec(model))
        for name, value in inputs.items():
            tensor = value if isinstance(value, protos.TensorProto) else make_tensor_proto(value)
            request.inputs[name].CopyFrom(tensor)
        if output_filter:
            request.output_filter.extend(output_filter)
        return request

    def _multi_inference_request(self, tasks: Iterable[Task], feature_map: FeatureMap):
        request = protos.MultiInferenceRequest(input=build_example_input(feature_map))
        for model, method in tasks:
            method_name = _TASK_METHODS.get(method, method)
            if method_name not in _TASK_METHODS.values():
                raise ValueError(f"unsupported inference method {method!r}, use 'classify' or 'regress'")
            request.tasks.add(model_spec=self._model_spec(model), method_name=method_name)
        if not request.tasks:
            raise ValueError("multi-inference needs at least one task")
        return request

    def _metadata_request(self, model: ModelLike):
        return protos.GetModelMetadataRequest(
            model_spec=self._model_spec(model),
            metadata_field=["signature_def"],
        )

    def _status_request(self, model: ModelLike):
        return protos.GetModelStatusRequest(model_spec=self._model_spec(model))

    @staticmethod
    def _reload_config_request(models: Iterable[Union[ServedModel, Tuple[str, str]]]):
        config_list = protos.ModelConfigList(
            config=[ServedModel.coerce(m).to_proto() for m in models]
        )
        return protos.ReloadConfigRequest(
            config=protos.ModelServerConfig(model_config_list=config_list)
        )

    @staticmethod
    def _check_reload_response(response) -> None:
        status = response.status
        if status.error_code != protos.ErrorCode.Value("OK"):
            raise ServerError(status.error_code, status.error_message or "config reload failed")


class ServingClient(_ClientBase):
    """
    Synchronous TensorFlow Serving client.

    Instances are made by ServingClientBuilder.build(); the configuration of
    a built client does not change.

    Example:
        with ServingClient.builder().hostname("localhost").port(8500).build() as client:
            result = client.predict("cat.jpg", "resnet")
            print(result.max_index)
    """

    def __init__(self, channel: Channel, signature_name: str, address: str):
        super().__init__(channel, signature_name, address)

    @staticmethod
    def builder() -> ServingClientBuilder:
        """Construct a new builder."""
        return ServingClientBuilder()

    def __enter__(self) -> "ServingClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Close the underlying channel."""
        if not self._closed:
            self._closed = True
            self._channel.close()

    def classify(self, model: ModelLike, feature_map: FeatureMap) -> ClassificationResult:
        """
        Run a classification on a single example.

        Args:
            model: Model name or ModelDescription
            feature_map: Mapping of feature name to Payload or native list

        Returns:
            ClassificationResult with one list of classes for the example
        """
        self._check_open()
        request = self._classification_request(model, feature_map)
        response = self._channel.classify(request)
        return ClassificationResult.from_proto(response.result)

    def regress(self, model: ModelLike, feature_map: FeatureMap) -> RegressionResult:
        """Run a regression on a single example."""
        self._check_open()
        request = self._regression_request(model, feature_map)
        response = self._channel.regress(request)
        return RegressionResult.from_proto(response.result)

    def predict_with_preprocessing(
        self,
        image: Any,
        model: ModelLike,
        preprocess: PixelFn,
    ) -> PredictionResult:
        """
        Run a prediction for a supplied image.

        Args:
            image: Path, encoded bytes, Pillow image, uint8 array or ImageSource
            model: Model name or ModelDescription
            preprocess: Applied to every pixel value (0.0 - 255.0) before sending,
                e.g. ``lambda p: p / 255.0``

        Returns:
            PredictionResult read from the "probabilities" and "classes" outputs

        Raises:
            DecodeError: if the image cannot be decoded
            ProtocolError: if the response lacks the expected outputs
        """
        self._check_open()
        request = self._image_predict_request(image, model, preprocess)
        response = self._channel.predict(request)
        return PredictionResult.from_response(response)

    def predict(self, image: Any, model: ModelLike) -> PredictionResult:
        """Run a prediction on the raw pixel values of an image."""
        return self.predict_with_preprocessing(image, model, identity)

    def predict_tensors(
        self,
        model: ModelLike,
        inputs: Mapping[str, Any],
        output_filter: Optional[Sequence[str]] = None,
    ) -> Dict[str, np.ndarray]:
        """
        Run a prediction on arbitrary named inputs.

        Args:
            model: Model name or ModelDescription
            inputs: Mapping of input name to numpy array (or TensorProto)
            output_filter: Output names to return, None for all

        Returns:
            Mapping of output name to numpy array
        """
        self._check_open()
        request = self._tensors_predict_request(model, inputs, output_filter)
        response = self._channel.predict(request)
        return decode_outputs(response.outputs)

    def multi_inference(self, tasks: Iterable[Task], feature_map: FeatureMap) -> List[InferenceResult]:
        """
        Run several classify/regress tasks on the same example.

        Args:
            tasks: (model, method) pairs, method being "classify" or "regress"
            feature_map: Mapping of feature name to Payload or native list
        """
        self._check_open()
        request = self._multi_inference_request(tasks, feature_map)
        response = self._channel.multi_inference(request)
        return [InferenceResult.from_proto(r) for r in response.results]

    def get_model_metadata(self, model: ModelLike) -> ModelMetadata:
        """Get the signatures of a model."""
        self._check_open()
        response = self._channel.get_model_metadata(self._metadata_request(model))
        return ModelMetadata.from_response(response)

    def get_model_status(self, model: ModelLike) -> List[ModelVersionStatus]:
        """Get the load state of every version of a model."""
        self._check_open()
        response = self._channel.get_model_status(self._status_request(model))
        return [ModelVersionStatus.from_proto(s) for s in response.model_version_status]

    def reload_config(self, models: Iterable[Union[ServedModel, Tuple[str, str]]]) -> None:
        """
        Replace the server's model config list.

        Args:
            models: ServedModel entries or (name, base_path) pairs

        Raises:
            ServerError: if the server rejects the new configuration
        """
        self._check_open()
        response = self._channel.handle_reload_config_request(self._reload_config_request(models))
        self._check_reload_response(response)


class AsyncServingClient(_ClientBase):
    """
    Asynchronous TensorFlow Serving client.

    Example:
        client = await ServingClient.builder().hostname("localhost").port(8500).build_async()
        async with client:
            result = await client.predict("cat.jpg", "resnet")
    """

    def __init__(self, channel: AsyncChannel, signature_name: str, address: str):
        super().__init__(channel, signature_name, address)

    async def __aenter__(self) -> "AsyncServingClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the underlying channel."""
        if not self._closed:
            self._closed = True
            await self._channel.close()

    async def classify(self, model: ModelLike, feature_map: FeatureMap) -> ClassificationResult:
        """Run a classification on a single example."""
        self._check_open()
        request = self._classification_request(model, feature_map)
        response = await self._channel.classify(request)
        return ClassificationResult.from_proto(response.result)

    async def regress(self, model: ModelLike, feature_map: FeatureMap) -> RegressionResult:
        """Run a regression on a single example."""
        self._check_open()
        request = self._regression_request(model, feature_map)
        response = await self._channel.regress(request)
        return RegressionResult.from_proto(response.result)

    async def predict_with_preprocessing(
        self,
        image: Any,
        model: ModelLike,
        preprocess: PixelFn,
    ) -> PredictionResult:
        """Run a prediction for a supplied image."""
        self._check_open()
        request = self._image_predict_request(image, model, preprocess)
        response = await self._channel.predict(request)
        return PredictionResult.from_response(response)

    async def predict(self, image: Any, model: ModelLike) -> PredictionResult:
        """Run a prediction on the raw pixel values of an image."""
        return await self.predict_with_preprocessing(image, model, identity)

    async def predict_many(
        self,
        images: Sequence[Any],
        model: ModelLike,
        preprocess: PixelFn = identity,
        max_concurrent: int = 10,
    ) -> List[PredictionResult]:
        """
        Run predictions on multiple images concurrently.

        Args:
            images: Images accepted by ``predict_with_preprocessing``
            model: Model name or ModelDescription
            preprocess: Per-pixel transform
            max_concurrent: Maximum requests in flight, at least 1

        Returns:
            List of PredictionResult objects, in the order of ``images``
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        semaphore = asyncio.Semaphore(max_concurrent)

        async def bounded_predict(image):
            async with semaphore:
                return await self.predict_with_preprocessing(image, model, preprocess)

        tasks = [bounded_predict(image) for image in images]
        return list(await asyncio.gather(*tasks))

    async def predict_tensors(
        self,
        model: ModelLike,
        inputs: Mapping[str, Any],
        output_filter: Optional[Sequence[str]] = None,
    ) -> Dict[str, np.ndarray]:
        """Run a prediction on arbitrary named inputs."""
        self._check_open()
        request = self._tensors_predict_request(model, inputs, output_filter)
        response = await self._channel.predict(request)
        return decode_outputs(response.outputs)

    async def multi_inference(self, tasks: Iterable[Task], feature_map: FeatureMap) -> List[InferenceResult]:
        """Run several classify/regress tasks on the same example."""
        self._check_open()
        request = self._multi_inference_request(tasks, feature_map)
        response = await self._channel.multi_inference(request)
        return [InferenceResult.from_proto(r) for r in response.results]

    async def get_model_metadata(self, model: ModelLike) -> ModelMetadata:
        """Get the signatures of a model."""
        self._check_open()
        response = await self._channel.get_model_metadata(self._metadata_request(model))
        return ModelMetadata.from_response(response)

    async def get_model_status(self, model: ModelLike) -> List[ModelVersionStatus]:
        """Get the load state of every version of a model."""
        self._check_open()
        response = await self._channel.get_model_status(self._status_request(model))
        return [ModelVersionStatus.from_proto(s) for s in response.model_version_status]

    async def reload_config(self, models: Iterable[Union[ServedModel, Tuple[str, str]]]) -> None:
        """Replace the server's model config list."""
        self._check_open()
        response = await self._channel.handle_reload_config_request(
            self._reload_config_request(models)
        )
        self._check_reload_response(response)
