import json
from pathlib import Path

import pytest

from frontend.clients.backend_client import BackendError
from frontend.session import SessionContext, SignInRequired


async def test_sign_in_persists_and_notifies(backend_client, session_file):
    context = SessionContext(backend_client, session_file=session_file)
    seen = []
    context.subscribe(seen.append)

    session = await context.sign_in("trader@example.com", "s3cret-pass")

    assert session.user_id == "user-1"
    assert context.require() is session
    assert seen == [session]
    assert json.loads(Path(session_file).read_text())["token"] == "valid-token"


async def test_wrong_password_raises(backend_client, session_file):
    context = SessionContext(backend_client, session_file=session_file)
    with pytest.raises(BackendError) as excinfo:
        await context.sign_in("trader@example.com", "wrong")
    assert excinfo.value.message == "Invalid email or password"
    assert context.current is None
    with pytest.raises(SignInRequired):
        context.require()


async def test_sign_out_forgets_the_session(signed_in, session_file):
    seen = []
    signed_in.subscribe(seen.append)
    signed_in.sign_out()
    assert signed_in.current is None
    assert seen == [None]
    assert not Path(session_file).exists()


async def test_context_restores_a_valid_saved_session(signed_in, backend_client, session_file):
    async with SessionContext(backend_client, session_file=session_file) as restored:
        assert restored.current is not None
        assert restored.current.email == "trader@example.com"


async def test_expired_saved_session_is_discarded(signed_in, backend_client, fake_backend, session_file):
    fake_backend.token = "rotated-token"
    context = SessionContext(backend_client, session_file=session_file)
    assert await context.restore() is None
    assert context.current is None
    assert not Path(session_file).exists()


async def test_unreadable_session_file(backend_client, session_file):
    Path(session_file).parent.mkdir(parents=True)
    Path(session_file).write_text("{not json")
    context = SessionContext(backend_client, session_file=session_file)
    assert await context.restore() is None
    assert not Path(session_file).exists()


async def test_unsubscribe(backend_client, session_file):
    context = SessionContext(backend_client, session_file=session_file)
    seen = []
    unsubscribe = context.subscribe(seen.append)
    unsubscribe()
    await context.sign_in("trader@example.com", "s3cret-pass")
    assert seen == []
