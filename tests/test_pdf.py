import base64
import io

import pytest
import requests
from PIL import Image

from coloring_app.exceptions import InvalidImageException
from coloring_app.image_data import decode_data_uri, validate_image_bytes
from coloring_app.pdf.service import build_pdf, fetch_image_bytes, render_pdf, safe_file_name

from conftest import make_png_bytes, png_data_uri


# ------------------------------
# image data helpers
# ------------------------------

def test_decode_data_uri():
    mime, data = decode_data_uri(png_data_uri())
    assert mime == "image/png"
    assert validate_image_bytes(data) == "image/png"


def test_decode_rejects_non_base64():
    with pytest.raises(InvalidImageException):
        decode_data_uri("data:image/png,plain-text")
    with pytest.raises(InvalidImageException):
        decode_data_uri("data:image/png;base64,@@@@")


def test_validate_invalid_bytes_raises():
    with pytest.raises(InvalidImageException):
        validate_image_bytes(b"notanimage")


# ------------------------------
# rendering
# ------------------------------

def test_build_pdf_from_data_uri():
    pdf = build_pdf(png_data_uri(size=(64, 48)), title="My Cat")
    assert pdf.startswith(b"%PDF")


def test_render_transparent_png():
    data = make_png_bytes(color=(0, 0, 0, 0), size=(20, 20), mode="RGBA")
    assert render_pdf(data).startswith(b"%PDF")


def test_undecodable_image_rejected():
    bogus = "data:image/png;base64," + base64.b64encode(b"definitely not a png").decode()
    with pytest.raises(InvalidImageException):
        build_pdf(bogus)


def test_fetch_http_image(mocker):
    response = mocker.MagicMock()
    response.content = make_png_bytes()
    get = mocker.patch("coloring_app.pdf.service.requests.get", return_value=response)

    assert fetch_image_bytes("https://images.example.com/cat.png") == response.content
    assert get.call_args.args[0] == "https://images.example.com/cat.png"


def test_fetch_failure_is_invalid_image(mocker):
    mocker.patch("coloring_app.pdf.service.requests.get", side_effect=requests.ConnectionError("down"))
    with pytest.raises(InvalidImageException):
        fetch_image_bytes("https://images.example.com/cat.png")


def test_unsupported_scheme_rejected():
    with pytest.raises(InvalidImageException):
        fetch_image_bytes("ftp://images.example.com/cat.png")


@pytest.mark.parametrize("given,expected", [
    ("my page", "my-page.pdf"),
    ("cat.pdf", "cat.pdf"),
    ("../../etc/passwd", "etc-passwd.pdf"),
])
def test_safe_file_name(given, expected):
    assert safe_file_name(given) == expected


def test_default_file_name():
    name = safe_file_name(None)
    assert name.startswith("coloring-page-") and name.endswith(".pdf")
