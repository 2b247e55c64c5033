import asyncio
import itertools

import httpx
import pytest

from tests.helpers.spotify import SpotifyStub, token_response
from vibecanvas.integrations.spotify.errors import SpotifyError, SpotifyErrorKind
from vibecanvas.integrations.spotify.oauth import SpotifyOAuth, TokenGrant
from vibecanvas.integrations.spotify.session import CredentialState, SpotifySession


@pytest.mark.parametrize("expires_in", [0, 1, 60, 3600, 86_400])
def test_commit_tokens_sets_absolute_expiry(session, clock, expires_in):
    before = session.now_ms()

    session.commit_tokens(TokenGrant("T", "R", expires_in))

    expected = before + expires_in * 1000
    assert expected <= session.state.token_expiry <= expected + 5
    assert session.state.access_token == "T"
    assert session.state.refresh_token == "R"


def test_commit_tokens_overwrites_previous_state(session):
    session.commit_tokens(TokenGrant("T1", "R1", 3600))
    session.commit_tokens(TokenGrant("T2", None, 60))

    assert session.state.access_token == "T2"
    assert session.state.refresh_token is None


@pytest.mark.parametrize(
    "has_access,has_expiry,expiry_in_future",
    list(itertools.product([True, False], repeat=3)),
)
def test_is_authenticated_truth_table(session, has_access, has_expiry, expiry_in_future):
    now = session.now_ms()
    session.state = CredentialState(
        access_token="T" if has_access else None,
        refresh_token="R",
        token_expiry=(now + 60_000 if expiry_in_future else now - 1) if has_expiry else None,
    )

    assert session.is_authenticated() is (has_access and has_expiry and expiry_in_future)


def test_is_authenticated_false_exactly_at_expiry(session):
    session.state = CredentialState("T", "R", session.now_ms())
    assert session.is_authenticated() is False


def test_clear_drops_credentials(session):
    session.commit_tokens(TokenGrant("T", "R", 3600))

    session.clear()

    assert session.state == CredentialState()
    assert session.is_authenticated() is False


@pytest.mark.asyncio
async def test_ensure_valid_token_without_access_token_makes_no_call(session, spotify_stub):
    with pytest.raises(SpotifyError) as ei:
        await session.ensure_valid_token()

    assert ei.value.kind is SpotifyErrorKind.NOT_AUTHENTICATED
    assert ei.value.requires_login
    assert spotify_stub.token_requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "remaining_ms,expected_refreshes",
    [
        (3_600_000, 0),
        (300_001, 0),
        (300_000, 0),
        (299_999, 1),
        (1, 1),
        (-60_000, 1),
    ],
)
async def test_ensure_valid_token_refreshes_inside_safety_buffer(
    session, spotify_stub, remaining_ms, expected_refreshes
):
    session.state = CredentialState("OLD", "R", session.now_ms() + remaining_ms)
    spotify_stub.token_responses.append(token_response("NEW", refresh_token=None))

    token = await session.ensure_valid_token()

    assert spotify_stub.refresh_calls == expected_refreshes
    assert token == ("NEW" if expected_refreshes else "OLD")


@pytest.mark.asyncio
async def test_ensure_valid_token_skips_check_without_expiry(session, spotify_stub):
    session.state = CredentialState("T", "R", None)

    assert await session.ensure_valid_token() == "T"
    assert spotify_stub.token_requests == []


@pytest.mark.asyncio
async def test_ensure_valid_token_propagates_refresh_failure(session, spotify_stub):
    session.state = CredentialState("T", "R", session.now_ms() - 1)
    spotify_stub.token_responses.append(httpx.Response(500))

    with pytest.raises(SpotifyError) as ei:
        await session.ensure_valid_token()

    assert ei.value.kind is SpotifyErrorKind.TOKEN_REFRESH_FAILED


@pytest.mark.asyncio
async def test_refresh_preserves_refresh_token_when_not_rotated(session, spotify_stub, clock):
    session.commit_tokens(TokenGrant("T", "R", 3600))
    spotify_stub.token_responses.append(token_response("T2", refresh_token=None, expires_in=1800))
    clock.advance(10)

    assert await session.refresh_access_token() == "T2"

    assert session.state.access_token == "T2"
    assert session.state.refresh_token == "R"
    assert session.state.token_expiry == session.now_ms() + 1_800_000


@pytest.mark.asyncio
async def test_refresh_replaces_rotated_refresh_token(session, spotify_stub):
    session.commit_tokens(TokenGrant("T", "R", 3600))
    spotify_stub.token_responses.append(token_response("T2", refresh_token="R2"))

    await session.refresh_access_token()

    assert session.state.refresh_token == "R2"


@pytest.mark.asyncio
async def test_refresh_without_refresh_token_makes_no_call(session, spotify_stub):
    session.state = CredentialState("T", None, session.now_ms() + 1000)

    with pytest.raises(SpotifyError) as ei:
        await session.refresh_access_token()

    assert ei.value.kind is SpotifyErrorKind.NO_REFRESH_TOKEN
    assert spotify_stub.token_requests == []


@pytest.mark.asyncio
async def test_failed_refresh_leaves_prior_state(session, spotify_stub):
    prior = CredentialState("T", "R", session.now_ms() - 5)
    session.state = CredentialState(**vars(prior))
    spotify_stub.token_responses.append(httpx.ConnectError("down"))

    with pytest.raises(SpotifyError) as ei:
        await session.refresh_access_token()

    assert ei.value.kind is SpotifyErrorKind.TOKEN_REFRESH_FAILED
    assert session.state == prior


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_request(clock):
    stub = SpotifyStub()

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.01)
        return stub.handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(slow_handler))
    oauth = SpotifyOAuth("id", "secret", "http://localhost:3000/callback", http)
    session = SpotifySession(oauth, clock=clock)
    session.state = CredentialState("OLD", "R", session.now_ms() - 1)
    stub.token_responses.append(token_response("NEW", refresh_token=None))

    tokens = await asyncio.gather(session.ensure_valid_token(), session.ensure_valid_token())

    assert tokens == ["NEW", "NEW"]
    assert stub.refresh_calls == 1
    await http.aclose()
