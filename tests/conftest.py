"""Test-specific fixtures.

The Spotify accounts service and Web API are replaced by ``SpotifyStub``,
served through ``httpx.MockTransport``; no test touches the network.
"""

import httpx
import pytest
from starlette.testclient import TestClient

from tests.helpers.spotify import (
    TEST_CLIENT_ID,
    TEST_CLIENT_SECRET,
    TEST_REDIRECT_URI,
    FakeClock,
    SpotifyStub,
)
from vibecanvas.integrations.spotify.client import SpotifyClient
from vibecanvas.integrations.spotify.oauth import SpotifyOAuth
from vibecanvas.integrations.spotify.session import SpotifySession
from vibecanvas.main import create_app
from vibecanvas.settings import Settings


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def spotify_stub():
    return SpotifyStub()


@pytest.fixture
def http_client(spotify_stub):
    return httpx.AsyncClient(transport=httpx.MockTransport(spotify_stub.handler))


@pytest.fixture
def oauth(http_client):
    return SpotifyOAuth(TEST_CLIENT_ID, TEST_CLIENT_SECRET, TEST_REDIRECT_URI, http_client)


@pytest.fixture
def session(oauth, clock):
    return SpotifySession(oauth, clock=clock)


@pytest.fixture
def spotify_client(session, http_client):
    return SpotifyClient(session, http_client)


@pytest.fixture
def settings():
    return Settings(
        SPOTIFY_CLIENT_ID=TEST_CLIENT_ID,
        SPOTIFY_CLIENT_SECRET=TEST_CLIENT_SECRET,
        SPOTIFY_REDIRECT_URI=TEST_REDIRECT_URI,
    )


@pytest.fixture
def app(settings, http_client, clock):
    return create_app(settings, http_client=http_client, clock=clock)


@pytest.fixture
def client(app):
    # Function-scope client so credential state never leaks between tests
    with TestClient(app, follow_redirects=False) as c:
        yield c
