"""pytest configuration for tfserving-client tests."""

import os
import tempfile
from concurrent import futures

import grpc
import numpy as np
import pytest
from PIL import Image

from tfserving_client import protos

from fakes import RecordingChannel, RecordingTransport, predict_response


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def pixels():
    """Raw bytes of a 2x2 RGB image, row-major with interleaved channels."""
    return np.arange(1, 13, dtype=np.uint8).reshape(2, 2, 3)


@pytest.fixture
def rgb_image(pixels):
    """A decoded 2x2 RGB image."""
    return Image.fromarray(pixels)


@pytest.fixture
def image_path(temp_dir, rgb_image):
    """The 2x2 RGB image saved as a lossless PNG."""
    path = os.path.join(temp_dir, "pixels.png")
    rgb_image.save(path, format="PNG")
    return path


@pytest.fixture
def channel():
    """A recording channel answering predict with a valid response."""
    return RecordingChannel({"Predict": predict_response([0.1, 0.7, 0.2], 1)})


@pytest.fixture
def transport(channel):
    return RecordingTransport(channel)


class FakePredictionServicer(protos.PredictionServiceServicer):
    """In-process TensorFlow Serving stand-in, used through a real grpc.server.

    Methods left to the generated base class answer UNIMPLEMENTED.
    """

    def __init__(self):
        self.requests = []

    def Predict(self, request, context):
        self.requests.append(request)
        if request.model_spec.name == "missing":
            context.abort(grpc.StatusCode.NOT_FOUND, "Servable not found for request: missing")
        if request.model_spec.name == "draining":
            context.abort(grpc.StatusCode.UNAVAILABLE, "Server is shutting down")
        return predict_response([0.25, 0.75], 1)

    def Classify(self, request, context):
        self.requests.append(request)
        response = protos.ClassificationResponse()
        response.model_spec.CopyFrom(request.model_spec)
        classes = response.result.classifications.add()
        classes.classes.add(label="spam", score=0.9)
        return response


class FakeModelServicer(protos.ModelServiceServicer):
    """Model service stand-in reporting a single available version."""

    def __init__(self, requests):
        self.requests = requests

    def GetModelStatus(self, request, context):
        self.requests.append(request)
        response = protos.GetModelStatusResponse()
        response.model_version_status.add(
            version=3,
            state=protos.ModelVersionState.Value("AVAILABLE"),
        )
        return response


@pytest.fixture
def grpc_server():
    """Start a gRPC server on a free local port; yields (servicer, port)."""
    servicer = FakePredictionServicer()
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
    protos.add_PredictionServiceServicer_to_server(servicer, server)
    protos.add_ModelServiceServicer_to_server(FakeModelServicer(servicer.requests), server)
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    yield servicer, port
    server.stop(None)
