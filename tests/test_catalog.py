import httpx
import pytest

from transcode_console.auth import AuthSession, MemoryCredentialStore
from transcode_console.errors import ConfirmationRequired, DomainError, ValidationError
from transcode_console.models import User
from transcode_console.services.api_client import ApiClient
from transcode_console.services.presets import PresetCatalog
from transcode_console.services.system import SystemInfo
from transcode_console.services.users import UserAdmin


@pytest.mark.anyio
async def test_transcode_type_options_preselect_defaults(client):
    catalog = PresetCatalog(client)
    await catalog.load()

    options = {pid: selected for pid, _, selected in catalog.transcode_type_options()}

    assert options == {"mp4_standard": True, "thumbnail": True, "hls_720p": False}


@pytest.mark.anyio
async def test_builtin_preset_cannot_be_deleted(client, backend):
    catalog = PresetCatalog(client)
    await catalog.load()

    with pytest.raises(ValidationError):
        await catalog.delete("thumbnail", confirmed=True)

    assert backend.calls("DELETE") == []


@pytest.mark.anyio
async def test_custom_preset_delete_needs_confirmation(client, backend):
    backend.presets["custom_9"] = {"preset_id": "custom_9", "name": "mine", "ffmpeg_args": [], "output_ext": "mkv", "is_builtin": False}
    catalog = PresetCatalog(client)
    await catalog.load()

    with pytest.raises(ConfirmationRequired):
        await catalog.delete("custom_9")
    await catalog.delete("custom_9", confirmed=True)

    assert "custom_9" not in backend.presets
    assert all(p.preset_id != "custom_9" for p in catalog.presets)


@pytest.mark.anyio
async def test_admin_manages_users(client, credentials, backend):
    admin = UserAdmin(client, AuthSession(client, credentials))

    await admin.create("carol", "s3cret", role="user")
    users = await admin.load()
    await admin.change_password("carol", "n3w")
    await admin.delete("carol", confirmed=True)

    assert "carol" in {u.username for u in users}
    assert "carol" not in backend.users


@pytest.mark.anyio
async def test_admin_account_cannot_be_deleted(client, credentials, backend):
    admin = UserAdmin(client, AuthSession(client, credentials))

    with pytest.raises(ValidationError):
        await admin.delete("admin", confirmed=True)

    assert backend.requests == []


@pytest.mark.anyio
async def test_non_admin_is_stopped_client_side(cfg, transport, backend):
    store = MemoryCredentialStore(token="viewer-token", user=User(username="viewer", role="user"))
    api = ApiClient(cfg, store, transport=transport)
    try:
        with pytest.raises(ValidationError):
            await UserAdmin(api, AuthSession(api, store)).load()
        with pytest.raises(DomainError) as exc_info:
            await api.list_users()
    finally:
        await api.aclose()

    assert exc_info.value.status_code == 403


@pytest.mark.anyio
async def test_system_info(client):
    info = SystemInfo(client)

    assert await info.check_health()
    assert (await info.load_config()).input_bucket == "media-in"
    assert (await info.load_platform()).gpu_available


@pytest.mark.anyio
async def test_health_reads_unhealthy_when_unreachable(cfg, credentials):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    api = ApiClient(cfg, credentials, transport=httpx.MockTransport(refuse))
    try:
        assert not await SystemInfo(api).check_health()
    finally:
        await api.aclose()
