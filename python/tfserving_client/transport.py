"""
Transports carry request messages to a model server and bring responses back.

A Transport opens a Channel to an address. The serving client only ever
talks to the Channel interface, so tests and alternative stacks can provide
their own implementation; GrpcTransport and AsyncGrpcTransport are the ones
used against a real TensorFlow Serving instance.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import grpc
import grpc.aio

from . import protos
from .exceptions import ServerError, ServingConnectionError, UnimplementedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rpc:
    """A unary method of a serving service, named as on the generated stub."""
    service: str
    name: str
    response_type: Any

    @property
    def path(self) -> str:
        return f"/{self.service}/{self.name}"


CLASSIFY = Rpc(protos.PREDICTION_SERVICE, "Classify", protos.ClassificationResponse)
REGRESS = Rpc(protos.PREDICTION_SERVICE, "Regress", protos.RegressionResponse)
PREDICT = Rpc(protos.PREDICTION_SERVICE, "Predict", protos.PredictResponse)
MULTI_INFERENCE = Rpc(protos.PREDICTION_SERVICE, "MultiInference", protos.MultiInferenceResponse)
GET_MODEL_METADATA = Rpc(protos.PREDICTION_SERVICE, "GetModelMetadata", protos.GetModelMetadataResponse)
GET_MODEL_STATUS = Rpc(protos.MODEL_SERVICE, "GetModelStatus", protos.GetModelStatusResponse)
RELOAD_CONFIG = Rpc(protos.MODEL_SERVICE, "HandleReloadConfigRequest", protos.ReloadConfigResponse)


class Channel(ABC):
    """An open connection to a model server."""

    @abstractmethod
    def invoke(self, rpc: Rpc, request):
        """Send ``request`` to ``rpc`` and return the decoded response."""

    def close(self) -> None:
        pass

    def classify(self, request):
        return self.invoke(CLASSIFY, request)

    def regress(self, request):
        return self.invoke(REGRESS, request)

    def predict(self, request):
        return self.invoke(PREDICT, request)

    def multi_inference(self, request):
        return self.invoke(MULTI_INFERENCE, request)

    def get_model_metadata(self, request):
        return self.invoke(GET_MODEL_METADATA, request)

    def get_model_status(self, request):
        return self.invoke(GET_MODEL_STATUS, request)

    def handle_reload_config_request(self, request):
        return self.invoke(RELOAD_CONFIG, request)


class Transport(ABC):
    """Opens channels."""

    @abstractmethod
    def connect(self, address: str) -> Channel:
        """
        Open a channel to ``address`` (``host:port``).

        Raises:
            ServingConnectionError: if the server cannot be reached
        """


class AsyncChannel(ABC):
    """An open connection to a model server, used from a coroutine."""

    @abstractmethod
    async def invoke(self, rpc: Rpc, request):
        """Send ``request`` to ``rpc`` and return the decoded response."""

    async def close(self) -> None:
        pass

    async def classify(self, request):
        return await self.invoke(CLASSIFY, request)

    async def regress(self, request):
        return await self.invoke(REGRESS, request)

    async def predict(self, request):
        return await self.invoke(PREDICT, request)

    async def multi_inference(self, request):
        return await self.invoke(MULTI_INFERENCE, request)

    async def get_model_metadata(self, request):
        return await self.invoke(GET_MODEL_METADATA, request)

    async def get_model_status(self, request):
        return await self.invoke(GET_MODEL_STATUS, request)

    async def handle_reload_config_request(self, request):
        return await self.invoke(RELOAD_CONFIG, request)


class AsyncTransport(ABC):
    """Opens asynchronous channels."""

    @abstractmethod
    async def connect(self, address: str) -> AsyncChannel:
        """
        Open a channel to ``address`` (``host:port``).

        Raises:
            ServingConnectionError: if the server cannot be reached
        """


def translate_rpc_error(error: grpc.RpcError, rpc: Rpc) -> Exception:
    """Map a failed gRPC call onto the client's exception hierarchy."""
    code = error.code() if hasattr(error, "code") else grpc.StatusCode.UNKNOWN
    details = (error.details() if hasattr(error, "details") else None) or str(error)

    if code == grpc.StatusCode.UNAVAILABLE:
        return ServingConnectionError(f"{rpc.path}: server unavailable: {details}")
    if code == grpc.StatusCode.UNIMPLEMENTED:
        return UnimplementedError(f"{rpc.path} is not implemented by the server: {details}")
    return ServerError(code.value[0], f"{code.name}: {details}")


def _service_stubs(channel) -> Dict[str, Any]:
    """Generated stubs for both serving services, keyed by full service name."""
    return {
        protos.PREDICTION_SERVICE: protos.PredictionServiceStub(channel),
        protos.MODEL_SERVICE: protos.ModelServiceStub(channel),
    }


class GrpcChannel(Channel):
    """Channel backed by a blocking grpc.Channel."""

    def __init__(self, channel: grpc.Channel, timeout: Optional[float] = None):
        self._channel = channel
        self._timeout = timeout
        self._stubs: Dict[str, Any] = _service_stubs(channel)

    def _stub(self, rpc: Rpc):
        return getattr(self._stubs[rpc.service], rpc.name)

    def invoke(self, rpc: Rpc, request):
        logger.debug("Calling %s", rpc.path)
        try:
            return self._stub(rpc)(request, timeout=self._timeout)
        except grpc.RpcError as e:
            raise translate_rpc_error(e, rpc) from e

    def close(self) -> None:
        self._channel.close()


class GrpcTransport(Transport):
    """
    Plaintext gRPC transport.

    Args:
        connect_timeout: Seconds to wait for the channel to become ready
            when connecting. None skips the wait and connects lazily.
        timeout: Deadline in seconds applied to every call, None for no deadline
        options: Extra channel arguments passed to grpc
    """

    def __init__(
        self,
        connect_timeout: Optional[float] = 10.0,
        timeout: Optional[float] = None,
        options: Optional[Sequence[Tuple[str, Any]]] = None,
    ):
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self.options: List[Tuple[str, Any]] = list(options or [])

    def connect(self, address: str) -> GrpcChannel:
        logger.info("Connecting to %s", address)
        channel = grpc.insecure_channel(address, options=self.options)
        if self.connect_timeout is not None:
            try:
                grpc.channel_ready_future(channel).result(timeout=self.connect_timeout)
            except grpc.FutureTimeoutError as e:
                channel.close()
                logger.warning("Could not connect to %s within %ss", address, self.connect_timeout)
                raise ServingConnectionError(
                    f"failed to connect to {address}: channel not ready after {self.connect_timeout}s"
                ) from e
        return GrpcChannel(channel, timeout=self.timeout)


class AsyncGrpcChannel(AsyncChannel):
    """Channel backed by a grpc.aio channel."""

    def __init__(self, channel: grpc.aio.Channel, timeout: Optional[float] = None):
        self._channel = channel
        self._timeout = timeout
        self._stubs: Dict[str, Any] = _service_stubs(channel)

    def _stub(self, rpc: Rpc):
        return getattr(self._stubs[rpc.service], rpc.name)

    async def invoke(self, rpc: Rpc, request):
        logger.debug("Calling %s", rpc.path)
        try:
            return await self._stub(rpc)(request, timeout=self._timeout)
        except grpc.RpcError as e:
            raise translate_rpc_error(e, rpc) from e

    async def close(self) -> None:
        await self._channel.close()


class AsyncGrpcTransport(AsyncTransport):
    """Plaintext gRPC transport for asyncio; takes the same arguments as GrpcTransport."""

    def __init__(
        self,
        connect_timeout: Optional[float] = 10.0,
        timeout: Optional[float] = None,
        options: Optional[Sequence[Tuple[str, Any]]] = None,
    ):
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self.options: List[Tuple[str, Any]] = list(options or [])

    async def connect(self, address: str) -> AsyncGrpcChannel:
        logger.info("Connecting to %s", address)
        channel = grpc.aio.insecure_channel(address, options=self.options)
        if self.connect_timeout is not None:
            try:
                await asyncio.wait_for(channel.channel_ready(), timeout=self.connect_timeout)
            except asyncio.TimeoutError as e:
                await channel.close()
                logger.warning("Could not connect to %s within %ss", address, self.connect_timeout)
                raise ServingConnectionError(
                    f"failed to connect to {address}: channel not ready after {self.connect_timeout}s"
                ) from e
        return AsyncGrpcChannel(channel, timeout=self.timeout)
