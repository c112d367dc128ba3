"""End-to-end tests against an in-process gRPC server."""

import asyncio
import socket

import pytest

from tfserving_client import ServingClient
from tfserving_client.exceptions import ServerError, ServingConnectionError, UnimplementedError


def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def connect(port, **kwargs):
    builder = ServingClient.builder().hostname("127.0.0.1").port(port).connect_timeout(5.0)
    for name, value in kwargs.items():
        getattr(builder, name)(value)
    return builder.build()


class TestGrpcTransport:
    """Test the gRPC transport end to end."""

    def test_predict(self, grpc_server, rgb_image, pixels):
        """Test a prediction crosses the wire intact."""
        servicer, port = grpc_server

        with connect(port) as client:
            result = client.predict_with_preprocessing(rgb_image, "resnet", lambda p: p)

        assert result.max_index == 1
        assert result.probabilities == [0.25, 0.75]

        request = servicer.requests[-1]
        tensor = request.inputs["input"]
        assert [d.size for d in tensor.tensor_shape.dim] == [1, 2, 2, 3]
        assert list(tensor.float_val) == [float(b) for b in pixels.reshape(-1)]
        assert request.model_spec.signature_name == "serving_default"

    def test_classify(self, grpc_server):
        servicer, port = grpc_server

        with connect(port, signature_name="classify_x") as client:
            result = client.classify("spam", {"text": ["hello"]})

        assert result.top().label == "spam"
        assert servicer.requests[-1].model_spec.signature_name == "classify_x"

    def test_model_status(self, grpc_server):
        _, port = grpc_server

        with connect(port) as client:
            statuses = client.get_model_status("resnet")

        assert [(s.version, s.state) for s in statuses] == [(3, "AVAILABLE")]

    def test_server_error(self, grpc_server, rgb_image):
        """Test a failing call carries the status code and details."""
        _, port = grpc_server

        with connect(port) as client:
            with pytest.raises(ServerError, match="Servable not found"):
                client.predict(rgb_image, "missing")

    def test_unimplemented(self, grpc_server):
        """Test methods the server lacks raise UnimplementedError."""
        _, port = grpc_server

        with connect(port) as client:
            with pytest.raises(UnimplementedError):
                client.regress("price", {"rooms": [3]})

    def test_connect_refused(self):
        """Test building against a closed port fails with ServingConnectionError."""
        builder = (
            ServingClient.builder()
            .hostname("127.0.0.1")
            .port(unused_port())
            .connect_timeout(0.5)
        )

        with pytest.raises(ServingConnectionError):
            builder.build()

    def test_async_predict(self, grpc_server, rgb_image):
        """Test the asyncio client against the same server."""
        servicer, port = grpc_server

        async def main():
            builder = ServingClient.builder().hostname("127.0.0.1").port(port).connect_timeout(5.0)
            client = await builder.build_async()
            async with client:
                return await client.predict(rgb_image, "resnet")

        result = asyncio.run(main())

        assert result.max_index == 1
        assert len(servicer.requests) == 1

    def test_unavailable_maps_to_connection_error(self, grpc_server, rgb_image):
        """Test an UNAVAILABLE status from the server raises ServingConnectionError."""
        _, port = grpc_server

        with connect(port) as client:
            with pytest.raises(ServingConnectionError, match="Server is shutting down"):
                client.predict(rgb_image, "draining")
