"""Shared fixtures for WebAPI route tests."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from audiobook_studio.webapi.application import create_app
from audiobook_studio.webapi.dependencies import StudioServices, get_services

USER_HEADERS = {"X-User-Id": "u1", "X-User-Email": "reader@studio.test"}


@pytest.fixture
def webapi_app(services: StudioServices) -> FastAPI:
    """Create a fresh app whose service graph is the test container.

    Clears dependency overrides on teardown.
    """
    app = create_app()
    app.dependency_overrides[get_services] = lambda: services
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(webapi_app: FastAPI) -> TestClient:
    return TestClient(webapi_app)


@pytest.fixture
def user_headers() -> dict:
    return dict(USER_HEADERS)


@pytest.fixture
def created_project(client: TestClient, user_headers: dict) -> dict:
    response = client.post(
        "/api/projects",
        data={
            "project_name": "Whale",
            "book_title": "Moby Dick",
            "author_name": "Herman Melville",
        },
        files={
            "epub_file": ("moby.epub", b"PK epub", "application/epub+zip"),
            "cover_file": ("cover.jpg", b"jpg", "image/jpeg"),
        },
        headers=user_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
