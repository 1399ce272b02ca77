# tests/test_bootstrap.py

from __future__ import annotations

import pytest

from tasksync.cli.bootstrap import create_initial_state

from .fakes import settle


@pytest.mark.asyncio
async def test_unconfigured_firebase_falls_back_to_memory(settings) -> None:
    settings.backend = "firebase"
    settings.firebase_api_key = None

    state = create_initial_state(settings=settings)

    assert state.backend_name == "memory"
    assert settings.data_dir.is_dir()


@pytest.mark.asyncio
async def test_feed_follows_sign_in_and_sign_out(settings) -> None:
    state = create_initial_state(settings=settings)
    assert not state.task_store.is_loaded

    await state.auth.signup("ana@example.com", "secret1")
    assert state.task_store.is_loaded

    await state.task_store.add("a")
    await settle()
    assert len(state.task_store.tasks.value) == 1

    state.auth.signout()
    assert not state.task_store.is_loaded
    assert state.task_store.tasks.value == ()

    # Signing back in re-opens the feed and the data is still there.
    await state.auth.login("ana@example.com", "secret1")
    await settle()
    assert [t.title for t in state.task_store.tasks.value] == ["a"]

    for cleanup in state.cleanups:
        cleanup()
    state.auth.signout()
    assert state.task_store.is_loaded
    state.task_store.close()
