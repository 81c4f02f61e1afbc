"""Shared fixtures for directupload tests."""
import pytest

from directupload.models import SelectedFile, UploadPolicy

from tests.payloads import POLICY_BODY


@pytest.fixture
def policy_body():
    return dict(POLICY_BODY)


@pytest.fixture
def policy():
    return UploadPolicy.from_response(POLICY_BODY)


@pytest.fixture
def cat_file():
    return SelectedFile(name="cat.png", mime_type="image/png", content=b"\x89PNG fake image")
