"""
Pytest configuration and fixtures for backend testing
"""

import io
import os
import zipfile

import pytest
from fastapi.testclient import TestClient

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("PACKAGE_TTL_SECONDS", None)

from package_viewer.config import Settings
from package_viewer.main import app
from package_viewer.storage.factory import get_settings, get_storage
from package_viewer.storage.memory import InMemoryStorage


def build_zip(entries, compression=zipfile.ZIP_DEFLATED) -> bytes:
    """Build an in-memory ZIP from (name, content) pairs or a dict."""
    items = entries.items() if isinstance(entries, dict) else entries
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression) as zf:
        for name, content in items:
            if isinstance(content, str):
                content = content.encode("utf-8")
            zf.writestr(name, content)
    return buffer.getvalue()


SCORM12_MANIFEST = """<?xml version="1.0" encoding="UTF-8"?>
<manifest identifier="com.example.course" version="1.0"
    xmlns="http://www.imsproject.org/xsd/imscp_rootv1p1p2"
    xmlns:adlcp="http://www.adlnet.org/xsd/adlcp_rootv1p2">
  <metadata>
    <schema>ADL SCORM</schema>
    <schemaversion>1.2</schemaversion>
  </metadata>
  <organizations default="ORG-1">
    <organization identifier="ORG-1">
      <title>Safety Basics</title>
      <item identifier="ITEM-1" identifierref="RES-1">
        <title>Lesson One</title>
      </item>
    </organization>
  </organizations>
  <resources>
    <resource identifier="RES-1" type="webcontent" adlcp:scormtype="sco" href="index.html">
      <file href="index.html"/>
    </resource>
  </resources>
</manifest>
"""

SCORM_HTML = "<html><head><title>Lesson</title></head><body>Lesson</body></html>"


@pytest.fixture
def zip_builder():
    return build_zip


@pytest.fixture
def scorm_manifest():
    return SCORM12_MANIFEST


@pytest.fixture
def scorm_zip():
    """Minimal SCORM 1.2 package with its launch file and one stylesheet"""
    return build_zip(
        {
            "imsmanifest.xml": SCORM12_MANIFEST,
            "index.html": SCORM_HTML,
            "css/style.css": "body { color: black; }",
        }
    )


@pytest.fixture
def h5p_zip():
    """Minimal H5P package with metadata and an HTML entry point"""
    return build_zip(
        {
            "h5p.json": '{"title": "Quiz", "mainLibrary": "H5P.MultiChoice", "language": "en"}',
            "content/content.json": '{"title": "Quiz Content"}',
            "content/index.html": "<html><head></head><body>Quiz</body></html>",
            "content/images/logo.png": b"\x89PNG\r\n\x1a\nfake",
        }
    )


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def test_settings():
    return Settings()


@pytest.fixture
def test_client(storage, test_settings):
    """Test client with an isolated in-memory store per test"""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


# Helper functions for tests
def assert_error_envelope(response, expected_status, expected_code):
    """Assert that response carries the standard error envelope"""
    assert response.status_code == expected_status, (
        f"Expected {expected_status}, got {response.status_code}: {response.text}"
    )
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == expected_code
    return body["error"]


@pytest.fixture
def assert_error():
    return assert_error_envelope
