"""
Tests for the HTTP service.

Transforms are replaced with CPU stand-ins so no GPU is needed.
"""

import numpy as np
import pytest
from fastapi.testclient import TestClient

from gpu_worker import GifCodec, GpuExecutionError, __version__
from gpu_worker.config import ServiceConfig
from gpu_worker.service import create_app, status_code_for
from gpu_worker.errors import DecodeError, EmptyInputError, EncodeError, InvalidFrameSize

from conftest import sub_rectangle_gif


class FakeTransform:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def execute(self, image, width, height, **options):
        self.calls.append(options)
        if self.error is not None:
            raise self.error
        return np.flipud(np.frombuffer(image, dtype=np.uint8).reshape(height, width, 4)).tobytes()


def client_for(mirror=None, blur=None):
    transforms = {'mirror': mirror or FakeTransform(), 'blur': blur or FakeTransform()}
    app = create_app(ServiceConfig(), transforms=transforms)
    return TestClient(app)


def upload(data):
    return {"file": ("input.gif", data, "image/gif")}


class TestHealth:
    """Test the health endpoints."""

    @pytest.mark.parametrize("path", ["/health", "/api/v1/health"])
    def test_health(self, path):
        with client_for() as client:
            response = client.get(path)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "gpu-worker"
        assert body["version"] == __version__
        assert "mirror-gif" in body["features"]
        assert response.headers["X-Version"] == __version__


class TestTransformEndpoints:
    """Test the GIF endpoints."""

    @pytest.mark.parametrize("path", ["/mirror-gif", "/api/v1/mirror-gif"])
    def test_mirror(self, path, sample_gif):
        with client_for() as client:
            response = client.post(path, files=upload(sample_gif))

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        assert len(GifCodec().decode(response.content)) == 3

    def test_blur_radius(self, sample_gif):
        blur = FakeTransform()
        with client_for(blur=blur) as client:
            response = client.post("/blur-gif", params={"radius": 2.5}, files=upload(sample_gif))

        assert response.status_code == 200
        assert blur.calls == [{'radius': 2.5}] * 3

    def test_blur_default_radius(self, sample_gif):
        blur = FakeTransform()
        with client_for(blur=blur) as client:
            response = client.post("/blur-gif", files=upload(sample_gif))

        assert response.status_code == 200
        assert blur.calls == [{}] * 3

    def test_missing_file(self):
        with client_for() as client:
            response = client.post("/mirror-gif", data={"other": "field"})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_empty_file(self):
        with client_for() as client:
            response = client.post("/mirror-gif", files=upload(b""))

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_malformed_gif(self):
        with client_for() as client:
            response = client.post("/mirror-gif", files=upload(b"not a gif"))

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "processing_error"
        assert body["message"]
        assert response.headers["X-Version"] == __version__

    def test_sub_rectangle_gif(self):
        with client_for() as client:
            response = client.post("/mirror-gif", files=upload(sub_rectangle_gif()))

        assert response.status_code == 422
        assert response.json()["error"] == "processing_error"

    def test_gpu_failure(self, sample_gif):
        mirror = FakeTransform(error=GpuExecutionError("device lost"))
        with client_for(mirror=mirror) as client:
            response = client.post("/mirror-gif", files=upload(sample_gif))

        assert response.status_code == 500
        assert response.json() == {"error": "internal_error", "message": "device lost"}

    def test_unexpected_failure(self, sample_gif):
        mirror = FakeTransform(error=RuntimeError("boom"))
        with client_for(mirror=mirror) as client:
            response = client.post("/mirror-gif", files=upload(sample_gif))

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"


@pytest.mark.parametrize("error,status", [
    (EmptyInputError("empty"), 400),
    (DecodeError("bad"), 422),
    (InvalidFrameSize(3, 2, 2), 422),
    (EncodeError("bad"), 422),
    (GpuExecutionError("lost"), 500),
])
def test_status_mapping(error, status):
    assert status_code_for(error) == status
