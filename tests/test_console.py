import pytest

from transcode_console.auth import MemoryCredentialStore
from transcode_console.errors import AuthError
from transcode_console.main import Console
from transcode_console.services.param_session import SessionState


@pytest.mark.anyio
async def test_console_login_to_dashboard(cfg, transport, backend):
    backend.seed_task("failed")
    async with Console(cfg, credentials=MemoryCredentialStore(), transport=transport) as console:
        await console.auth.login("admin", "admin-pass")
        figures = await console.dashboard.refresh()
        page = await console.tasks.on_activate()

    assert figures.failed == 1
    assert page.total == 1


@pytest.mark.anyio
async def test_invalidation_resets_generation_sessions(cfg, credentials, transport, backend):
    async with Console(cfg, credentials=credentials, transport=transport) as console:
        extra = console.new_generation_session()
        await console.ai.generate("mp4 720p")
        await extra.generate("webm 480p")
        backend.revoke_tokens()

        with pytest.raises(AuthError):
            await console.system.load_config()

    assert console.ai.state == SessionState.IDLE
    assert extra.result is None


@pytest.mark.anyio
async def test_closed_generation_session_is_not_reset(cfg, credentials, transport):
    async with Console(cfg, credentials=credentials, transport=transport) as console:
        kept = console.new_generation_session()
        closed = console.new_generation_session()
        await kept.generate("mp4 720p")
        await closed.generate("webm 480p")

        console.close_generation_session(closed)
        console.auth.logout()

    assert kept.state == SessionState.IDLE
    assert closed.state == SessionState.GENERATED
    assert closed.result is not None
