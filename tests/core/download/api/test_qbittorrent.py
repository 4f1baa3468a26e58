"""Tests for QBittorrentClient login/add-torrent contract."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from anime_monitor.core.download.api.model import APIResponse, SubmissionRequest
from anime_monitor.core.download.api.qbittorrent import QBittorrentClient
from anime_monitor.core.errors import AuthError, SubmissionError, TransportError

MAGNET = "magnet:?xt=urn:btih:abc123"


@pytest.fixture
def client():
    return QBittorrentClient(
        base_url="http://localhost:8080/",
        username="admin",
        password="secret",
        log=MagicMock(),
    )


def _mock_session(status: int = 200, body: str = "Ok.") -> MagicMock:
    """A ClientSession stand-in whose post() yields one canned response."""
    response = MagicMock(status=status)
    response.text = AsyncMock(return_value=body)

    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock(closed=False)
    session.post = MagicMock(return_value=ctx)
    session.close = AsyncMock()
    return session


# ---------------------------------------------------------------------------
# SubmissionRequest
# ---------------------------------------------------------------------------


class TestSubmissionRequest:
    def test_form_is_unpaused_by_default(self):
        form = SubmissionRequest(magnet_link=MAGNET, save_path="/dl").to_form()
        assert form == {"urls": MAGNET, "paused": "false", "savepath": "/dl"}

    def test_paused_flag(self):
        form = SubmissionRequest(MAGNET, "/dl", paused=True).to_form()
        assert form["paused"] == "true"


# ---------------------------------------------------------------------------
# authenticate
# ---------------------------------------------------------------------------


class TestAuthenticate:
    def test_trailing_slash_stripped(self, client):
        assert client.base_url == "http://localhost:8080"

    async def test_success(self, client):
        mock_post = AsyncMock(return_value=APIResponse(200, "Ok."))
        with patch.object(client, "_post", mock_post):
            await client.authenticate()

        mock_post.assert_awaited_once_with(
            "http://localhost:8080/api/v2/auth/login",
            {"username": "admin", "password": "secret"},
        )

    @pytest.mark.parametrize("body", ["ok.", "OK.", "Ok.\n"])
    async def test_marker_is_case_insensitive(self, client, body):
        with patch.object(
            client, "_post", AsyncMock(return_value=APIResponse(200, body))
        ):
            await client.authenticate()

    async def test_200_without_marker_fails(self, client):
        with patch.object(
            client, "_post", AsyncMock(return_value=APIResponse(200, "Fails."))
        ):
            with pytest.raises(AuthError) as exc_info:
                await client.authenticate()

        assert exc_info.value.status_code == 200
        assert exc_info.value.body == "Fails."

    async def test_forbidden(self, client):
        with patch.object(
            client, "_post", AsyncMock(return_value=APIResponse(403, "Forbidden"))
        ):
            with pytest.raises(AuthError) as exc_info:
                await client.authenticate()

        assert exc_info.value.status_code == 403
        assert "Forbidden" in str(exc_info.value)

    async def test_marker_with_error_status_fails(self, client):
        with patch.object(
            client, "_post", AsyncMock(return_value=APIResponse(500, "Ok."))
        ):
            with pytest.raises(AuthError):
                await client.authenticate()

    async def test_network_failure_is_auth_error(self, client):
        transport_error = TransportError("http://localhost:8080/api/v2/auth/login", "refused")
        with patch.object(client, "_post", AsyncMock(side_effect=transport_error)):
            with pytest.raises(AuthError) as exc_info:
                await client.authenticate()

        assert exc_info.value.status_code is None
        assert exc_info.value.__cause__ is transport_error

    async def test_clears_previous_session_cookie(self, client):
        session = _mock_session()
        client._session = session

        await client.authenticate()

        session.cookie_jar.clear.assert_called_once()
        session.post.assert_called_once()


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------


class TestSubmit:
    async def test_success_creates_directory(self, client, tmp_path):
        save_path = tmp_path / "anime" / "show"
        mock_post = AsyncMock(return_value=APIResponse(200, "Ok."))

        with patch.object(client, "_post", mock_post):
            await client.submit(MAGNET, str(save_path))

        assert save_path.is_dir()
        mock_post.assert_awaited_once_with(
            "http://localhost:8080/api/v2/torrents/add",
            {"urls": MAGNET, "paused": "false", "savepath": str(save_path)},
        )

    async def test_rejected(self, client, tmp_path):
        with patch.object(
            client,
            "_post",
            AsyncMock(return_value=APIResponse(415, "Torrent file is not valid")),
        ):
            with pytest.raises(SubmissionError) as exc_info:
                await client.submit(MAGNET, str(tmp_path))

        assert exc_info.value.status_code == 415
        assert exc_info.value.body == "Torrent file is not valid"

    async def test_transport_error_propagates(self, client, tmp_path):
        with patch.object(
            client, "_post", AsyncMock(side_effect=TransportError("url", "timeout"))
        ):
            with pytest.raises(TransportError):
                await client.submit(MAGNET, str(tmp_path))

    async def test_directory_failure_skips_request(self, client, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x", encoding="utf-8")
        mock_post = AsyncMock()

        with patch.object(client, "_post", mock_post):
            with pytest.raises(SubmissionError) as exc_info:
                await client.submit(MAGNET, str(not_a_dir))

        assert exc_info.value.status_code is None
        mock_post.assert_not_awaited()


# ---------------------------------------------------------------------------
# _post / session lifecycle
# ---------------------------------------------------------------------------


class TestPost:
    async def test_returns_status_and_body(self, client):
        client._session = _mock_session(status=403, body="Forbidden")

        resp = await client._post("http://localhost:8080/x", {"a": "b"})

        assert resp == APIResponse(403, "Forbidden")
        assert resp.ok is False
        client._session.post.assert_called_once_with(
            "http://localhost:8080/x", data={"a": "b"}
        )

    async def test_client_error_becomes_transport_error(self, client):
        session = _mock_session()
        session.post.side_effect = aiohttp.ClientConnectionError("refused")
        client._session = session

        with pytest.raises(TransportError) as exc_info:
            await client._post("http://localhost:8080/x", {})

        assert exc_info.value.url == "http://localhost:8080/x"

    async def test_timeout_becomes_transport_error(self, client):
        session = _mock_session()
        session.post.side_effect = TimeoutError()
        client._session = session

        with pytest.raises(TransportError) as exc_info:
            await client._post("http://localhost:8080/x", {})

        assert exc_info.value.reason == "TimeoutError"

    async def test_session_reused_across_requests(self, client):
        session = _mock_session()
        client._session = session

        await client._post("http://localhost:8080/a", {})
        await client._post("http://localhost:8080/b", {})

        assert client._get_session() is session
        assert session.post.call_count == 2

    async def test_close(self, client):
        session = _mock_session()
        client._session = session

        async with client:
            pass

        session.close.assert_awaited_once()
        assert client._session is None
