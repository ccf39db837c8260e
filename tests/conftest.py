import base64
import io
import os
import time

import pytest
from moto import mock_aws
from fastapi.testclient import TestClient
from jose import jwt
from PIL import Image

# Set test environment variables BEFORE importing app modules
os.environ["TESTING"] = "true"

# Dummy AWS credentials for moto
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["S3_BUCKET"] = "coloring-test-bucket"
os.environ["DYNAMODB_TABLE"] = "GalleryImagesTest"
# Clear the AWS_ENDPOINT_URL so moto mocks are used instead of localstack
os.environ.pop("AWS_ENDPOINT_URL", None)
# No OpenAI key: the app runs with the template refiner and placeholder images
os.environ.pop("OPENAI_API_KEY", None)
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ.pop("AUTH_CERTS_URL", None)
os.environ["GENERATION_RATE_LIMIT"] = "100"

from coloring_app.main import app
from coloring_app.gallery.store import DynamoGalleryStore
from coloring_app.storage.dynamodb import DynamoDBService
from coloring_app.storage.s3 import S3Service

JWT_SECRET = "test-secret"


def make_png_bytes(color="red", size=(10, 10), mode="RGB"):
    """Generate a simple valid PNG in-memory."""
    img = Image.new(mode, size, color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def png_data_uri(**kwargs) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png_bytes(**kwargs)).decode("ascii")


def make_token(uid: str = "user-1", secret: str = JWT_SECRET, expires_in: int = 3600, **claims) -> str:
    now = int(time.time())
    payload = {"sub": uid, "iat": now, "exp": now + expires_in, "email": f"{uid}@example.com"}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(uid: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(uid)}"}


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture(scope="function")
def aws(aws_credentials):
    with mock_aws():
        yield


@pytest.fixture(scope="function")
def gallery_store(aws):
    """DynamoGalleryStore over a moto table and bucket, created by the services themselves."""
    return DynamoGalleryStore(DynamoDBService(), S3Service())


@pytest.fixture(scope="function")
def test_client(aws):
    # The lifespan builds every service inside the moto context
    with TestClient(app) as client:
        yield client
