import asyncio
import pytest
from sqlmodel import Session, select

import infra.database.connection as db_connection
from infra.local_state import LocalState
from app.gateway import GatewayError
from app.store.tracker import AnalyticsTracker
from app.store.types import AuthState, PromptEntry, PromptInput, Lineage
from models import Prompt, Profile, PromptHistory, AnalyticsEvent

def fail(operation: str = "test"):
    return GatewayError("simulated failure", operation)

async def seeded_store(make_store, add_profile, user_id="u1", count=1, **prompt_kwargs):
    add_profile(user_id)
    store = make_store(user_id)
    await store.hydrate()
    ids = []
    for i in range(count):
        ids.append(await store.add_prompt(PromptInput(title=f"Prompt {i}", content=f"content {i}", **prompt_kwargs)))
    return store, ids

# --- Hydration ---

@pytest.mark.asyncio
async def test_hydrate_loads_own_and_public(make_store, add_profile, gateway):
    add_profile("author", "Author")
    gateway.set_identity("author")
    await gateway.insert("prompts", {"user_id": "author", "title": "public", "content": "c", "visibility": "Public"})
    await gateway.insert("prompts", {"user_id": "author", "title": "private", "content": "c"})

    hydrated = []
    store = make_store("viewer", on_hydrated=hydrated.append)
    assert await store.hydrate() is True
    assert [p.title for p in store.prompts] == ["public"]
    assert store.prompts[0].author_name == "Author"
    assert hydrated == [store]
    # 何も選択されていなければ先頭が選ばれる
    assert store.selected_prompt_id == store.prompts[0].id

    owner = make_store("author")
    await owner.hydrate()
    assert {p.title for p in owner.prompts} == {"public", "private"}

@pytest.mark.asyncio
async def test_hydrate_skipped_while_auth_loading(make_store):
    store = make_store(status="loading")
    assert await store.hydrate() is False
    assert not store.hydrated

@pytest.mark.asyncio
async def test_hydrate_keeps_prompts_when_fetch_fails(make_store, add_profile, mocker):
    store, ids = await seeded_store(make_store, add_profile)
    mocker.patch.object(store.gateway, "select", side_effect=fail("select"))
    assert await store.hydrate() is True
    assert [p.id for p in store.prompts] == ids

@pytest.mark.asyncio
async def test_set_auth_cancels_running_hydration(make_store, add_profile):
    add_profile("u1")
    store = make_store("u1")
    await store.add_prompt(PromptInput(title="t", content="c"))

    task = asyncio.ensure_future(store.hydrate())
    await asyncio.sleep(0)
    store.set_auth(AuthState.guest())
    assert await task is False
    assert store.prompts == []
    assert not store.hydrated

@pytest.mark.asyncio
async def test_close_cancels_hydration(make_store):
    store = make_store("u1")
    task = asyncio.ensure_future(store.hydrate())
    await asyncio.sleep(0)
    await store.close()
    assert await task is False
    assert await store.hydrate() is False

# --- Guest ---

@pytest.mark.asyncio
async def test_guest_add_prompt_is_rejected(make_store, toasts):
    store = make_store()
    await store.hydrate()
    before = store.prompts
    assert await store.add_prompt({"title": "t", "content": "c"}) == ""
    assert store.prompts == before
    assert toasts == ["ログインが必要です"]

@pytest.mark.asyncio
async def test_guest_writes_are_noops(make_store, add_profile, gateway):
    add_profile("author")
    gateway.set_identity("author")
    row = await gateway.insert("prompts", {"user_id": "author", "title": "t", "content": "c", "visibility": "Public"})

    store = make_store()
    await store.hydrate()
    assert await store.toggle_favorite(row["id"]) is False
    assert await store.toggle_like(row["id"]) is False
    assert await store.add_folder("f") == ""
    assert store.favorites == [] and store.likes == [] and store.folders == []
    assert await store.get_history(row["id"]) == []

@pytest.mark.asyncio
async def test_guest_copy_updates_locally_only(make_store, add_profile, gateway, mocker):
    add_profile("author")
    gateway.set_identity("author")
    row = await gateway.insert("prompts", {"user_id": "author", "title": "t", "content": "c", "visibility": "Public"})

    store = make_store()
    await store.hydrate()
    rpc = mocker.spy(store.gateway, "rpc")
    store.increment_use_count(row["id"])
    await store.drain()
    assert store.get_prompt(row["id"]).use_count == 1
    rpc.assert_not_called()
    assert store.milestones.is_completed("copy")

# --- Add ---

@pytest.mark.asyncio
async def test_add_prompt_inserts_and_selects(make_store, add_profile, session: Session):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    prompt = store.prompts[0]
    assert prompt.id == prompt_id
    assert prompt.author_id == "u1"
    assert prompt.lineage == Lineage()
    assert store.selected_prompt_id == prompt_id
    assert store.milestones.is_completed("create")

    with Session(db_connection.engine) as s:
        history = s.exec(select(PromptHistory).where(PromptHistory.prompt_id == prompt_id)).all()
    assert [(h.title, h.content) for h in history] == [("Prompt 0", "content 0")]

@pytest.mark.asyncio
async def test_add_prompt_heals_missing_profile(make_store, toasts):
    store = make_store("newcomer")
    await store.hydrate()
    prompt_id = await store.add_prompt(PromptInput(title="t", content="c"))
    assert prompt_id
    assert toasts == []
    assert store.prompts[0].author_name == "newcomer"

    with Session(db_connection.engine) as s:
        assert s.get(Profile, "newcomer").display_name == "newcomer"

@pytest.mark.asyncio
async def test_add_prompt_reports_profile_heal_failure(make_store, toasts, mocker):
    store = make_store("newcomer")
    await store.hydrate()
    mocker.patch.object(store.gateway, "upsert", side_effect=fail("upsert profiles"))
    assert await store.add_prompt(PromptInput(title="t", content="c")) == ""
    assert toasts == ["ユーザープロファイルの修復に失敗しました"]
    assert store.prompts == []

@pytest.mark.asyncio
async def test_add_prompt_retry_failure(make_store, add_profile, toasts, mocker):
    add_profile("u1")
    store = make_store("u1")
    await store.hydrate()
    insert = mocker.patch.object(store.gateway, "insert", side_effect=fail("insert prompts"))
    assert await store.add_prompt(PromptInput(title="t", content="c")) == ""
    assert insert.call_count == 2
    assert toasts == ["保存に失敗しました。もう一度お試しください"]

@pytest.mark.asyncio
async def test_add_public_prompt_tracks_publish(make_store, add_profile, gateway):
    add_profile("u1")
    tracker = AnalyticsTracker(gateway, LocalState())
    store = make_store("u1", tracker=tracker)
    await store.hydrate()
    await store.add_prompt(PromptInput(title="t", content="c", visibility="Public"))
    await store.drain()

    with Session(db_connection.engine) as s:
        events = [e.event_name for e in s.exec(select(AnalyticsEvent)).all()]
    assert sorted(events) == ["prompt_create", "prompt_publish"]
    assert store.milestones.is_completed("publish")

# --- Update / Delete ---

@pytest.mark.asyncio
async def test_update_prompt_saves_and_writes_history(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    assert await store.update_prompt(prompt_id, {"title": "Renamed", "tags": ["a", "b"]}) is True
    assert store.get_prompt(prompt_id).title == "Renamed"
    assert store.get_prompt(prompt_id).tags == ("a", "b")

    history = await store.get_history(prompt_id)
    assert [h.title for h in history] == ["Prompt 0", "Renamed"]

    with Session(db_connection.engine) as s:
        assert s.get(Prompt, prompt_id).tags == ["a", "b"]

@pytest.mark.asyncio
async def test_history_of_private_prompt_is_not_readable_by_others(make_store, add_profile):
    owner, _ = await seeded_store(make_store, add_profile, count=0)
    prompt_id = await owner.add_prompt(PromptInput(title="secret title", content="secret content"))
    assert [(h.title, h.content) for h in await owner.get_history(prompt_id)] == [("secret title", "secret content")]

    add_profile("u2")
    other = make_store("u2")
    await other.hydrate()
    assert other.get_prompt(prompt_id) is None
    assert await other.get_history(prompt_id) == []

@pytest.mark.asyncio
async def test_update_prompt_rolls_back_on_failure(make_store, add_profile, toasts, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    before = store.get_prompt(prompt_id)
    mocker.patch.object(store.gateway, "update", side_effect=fail("update prompts"))
    assert await store.update_prompt(prompt_id, {"title": "Lost"}) is False
    assert store.get_prompt(prompt_id) == before
    assert toasts == ["更新の保存に失敗しました"]

@pytest.mark.asyncio
async def test_update_prompt_rejects_unknown_fields_and_foreign_prompts(make_store, add_profile, gateway):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    assert await store.update_prompt(prompt_id, {"like_count": 99}) is False

    add_profile("other")
    gateway.set_identity("other")
    row = await gateway.insert("prompts", {"user_id": "other", "title": "theirs", "content": "c", "visibility": "Public"})
    store.gateway.set_identity("u1")
    await store.refresh_prompts()
    assert await store.update_prompt(row["id"], {"title": "mine now"}) is False
    assert store.get_prompt(row["id"]).title == "theirs"

@pytest.mark.asyncio
async def test_begin_update_exposes_two_phase_contract(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    mutation = store.begin_update_prompt(prompt_id, {"title": "Draft"})
    assert mutation.applied.title == "Draft"
    assert store.get_prompt(prompt_id).title == "Draft"
    mutation.rollback()
    assert store.get_prompt(prompt_id).title == "Prompt 0"

    mutation = store.begin_update_prompt(prompt_id, {"title": "Saved"})
    result = await mutation.commit()
    assert result.ok
    assert result.data["title"] == "Saved"

@pytest.mark.asyncio
async def test_delete_prompt(make_store, add_profile, toasts):
    store, ids = await seeded_store(make_store, add_profile, count=2)
    assert await store.delete_prompt(ids[0]) is True
    assert [p.id for p in store.prompts] == [ids[1]]
    assert toasts == ["削除しました"]

@pytest.mark.asyncio
async def test_delete_prompt_restores_position_and_memberships(make_store, add_profile, toasts, mocker):
    store, ids = await seeded_store(make_store, add_profile, count=3, visibility="Public")
    middle = store.prompts[1].id
    await store.toggle_favorite(middle)
    await store.toggle_like(middle)
    order = [p.id for p in store.prompts]

    mocker.patch.object(store.gateway, "delete", side_effect=fail("delete prompts"))
    assert await store.delete_prompt(middle) is False
    assert [p.id for p in store.prompts] == order
    assert store.is_favorited(middle)
    assert store.is_liked(middle)
    assert toasts[-1] == "削除に失敗しました。プロンプトを復元しました"

# --- Fork / History ---

@pytest.mark.asyncio
async def test_fork_prompt(make_store, add_profile, gateway):
    add_profile("author", "Author")
    gateway.set_identity("author")
    row = await gateway.insert("prompts", {
        "user_id": "author", "title": "Base", "content": "c", "tags": ["t"], "visibility": "Public",
    })

    store, _ = await seeded_store(make_store, add_profile, user_id="fan", count=0)
    fork_id = await store.fork_prompt(row["id"])
    fork = store.get_prompt(fork_id)
    assert fork.title == "Base (アレンジ)"
    assert fork.visibility == "Private"
    assert fork.tags == ("t",)
    assert fork.lineage == Lineage(is_original=False, parent=row["id"])
    assert [p.id for p in store.get_arrangements(row["id"])] == [fork_id]

    author_store = make_store("author")
    await author_store.hydrate()
    assert [n.type for n in author_store.notifications] == ["fork"]
    assert author_store.unread_count == 1

@pytest.mark.asyncio
async def test_restore_version(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    await store.update_prompt(prompt_id, {"content": "second"})
    first = (await store.get_history(prompt_id))[0]
    assert await store.restore_version(prompt_id, first) is True
    assert store.get_prompt(prompt_id).content == "content 0"

@pytest.mark.asyncio
async def test_get_history_returns_empty_on_error(make_store, add_profile, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    mocker.patch.object(store.gateway, "select", side_effect=fail("select prompt_history"))
    assert await store.get_history(prompt_id) == []

# --- Engagement ---

@pytest.mark.asyncio
async def test_toggle_like_twice_restores_state(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile, visibility="Public")
    assert store.get_prompt(prompt_id).like_count == 0
    likes_before = store.likes

    assert await store.toggle_like(prompt_id) is True
    assert store.get_prompt(prompt_id).like_count == 1
    assert store.is_liked(prompt_id)

    assert await store.toggle_like(prompt_id) is True
    assert store.get_prompt(prompt_id).like_count == 0
    assert store.likes == likes_before

@pytest.mark.asyncio
async def test_toggle_like_rolls_back(make_store, add_profile, toasts, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile, visibility="Public")
    mocker.patch.object(store.gateway, "insert", side_effect=fail("insert likes"))
    assert await store.toggle_like(prompt_id) is False
    assert store.get_prompt(prompt_id).like_count == 0
    assert not store.is_liked(prompt_id)
    assert toasts == ["いいねに失敗しました"]

@pytest.mark.asyncio
async def test_toggle_favorite(make_store, add_profile, toasts, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    assert await store.toggle_favorite(prompt_id) is True
    assert store.favorites == [prompt_id]
    assert store.milestones.is_completed("favorite")

    mocker.patch.object(store.gateway, "delete", side_effect=fail("delete favorites"))
    assert await store.toggle_favorite(prompt_id) is False
    assert store.favorites == [prompt_id]
    assert toasts == ["お気に入りの解除に失敗しました"]

@pytest.mark.asyncio
async def test_pin_cap_never_exceeded(make_store, add_profile, toasts):
    store, ids = await seeded_store(make_store, add_profile, count=7)
    for prompt_id in ids:
        await store.toggle_pin(prompt_id)
        assert store.pinned_count() <= 5
    assert store.pinned_count() == 5
    assert toasts.count("ピン留めは最大5件までです") == 2

    # 1件外せばまたピン留めできる
    pinned = [p.id for p in store.prompts if p.is_pinned]
    await store.toggle_pin(pinned[0])
    unpinned = next(p.id for p in store.prompts if not p.is_pinned and p.id != pinned[0])
    assert await store.toggle_pin(unpinned) is True
    assert store.pinned_count() == 5

@pytest.mark.asyncio
async def test_toggle_pin_rolls_back(make_store, add_profile, toasts, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    mocker.patch.object(store.gateway, "update", side_effect=fail("update prompts"))
    assert await store.toggle_pin(prompt_id) is False
    assert not store.get_prompt(prompt_id).is_pinned
    assert toasts == ["ピン留めの更新に失敗しました"]

@pytest.mark.asyncio
async def test_increment_use_count(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    store.increment_use_count(prompt_id)
    assert store.get_prompt(prompt_id).use_count == 1
    await store.drain()

    with Session(db_connection.engine) as s:
        assert s.get(Prompt, prompt_id).use_count == 1
    assert [p.id for p in store.get_recently_used()] == [prompt_id]

@pytest.mark.asyncio
async def test_increment_use_count_failure_is_not_rolled_back(make_store, add_profile, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    mocker.patch.object(store.gateway, "rpc", side_effect=fail("rpc increment_use_count"))
    store.increment_use_count(prompt_id)
    await store.drain()
    assert store.get_prompt(prompt_id).use_count == 1

# --- Folders ---

@pytest.mark.asyncio
async def test_folder_lifecycle(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    folder_id = await store.add_folder("Work", "#ff0000")
    assert folder_id and not folder_id.startswith("temp-")
    assert [f.id for f in store.folders] == [folder_id]

    assert await store.move_to_folder(prompt_id, folder_id) is True
    store.set_selected_folder_id(folder_id)
    assert [p.id for p in store.get_filtered_prompts()] == [prompt_id]

    assert await store.delete_folder(folder_id) is True
    assert store.folders == []
    assert store.get_prompt(prompt_id).folder_id is None
    assert store.selected_folder_id is None

    with Session(db_connection.engine) as s:
        assert s.get(Prompt, prompt_id).folder_id is None

@pytest.mark.asyncio
async def test_add_folder_failure_removes_temp(make_store, add_profile, toasts, mocker):
    store, _ = await seeded_store(make_store, add_profile, count=0)
    mocker.patch.object(store.gateway, "insert", side_effect=fail("insert folders"))
    assert await store.add_folder("Work") == ""
    assert store.folders == []
    assert toasts == ["フォルダの作成に失敗しました"]

@pytest.mark.asyncio
async def test_delete_folder_failure_restores(make_store, add_profile, toasts, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    folder_id = await store.add_folder("Work")
    await store.move_to_folder(prompt_id, folder_id)
    store.set_selected_folder_id(folder_id)

    mocker.patch.object(store.gateway, "delete", side_effect=fail("delete folders"))
    assert await store.delete_folder(folder_id) is False
    assert [f.id for f in store.folders] == [folder_id]
    assert store.get_prompt(prompt_id).folder_id == folder_id
    assert store.selected_folder_id == folder_id
    assert toasts == ["フォルダの削除に失敗しました"]

@pytest.mark.asyncio
async def test_move_to_folder_failure_keeps_local_change(make_store, add_profile, toasts, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    mocker.patch.object(store.gateway, "update", side_effect=fail("update prompts"))
    assert await store.move_to_folder(prompt_id, "f1") is False
    assert store.get_prompt(prompt_id).folder_id == "f1"
    assert toasts == ["フォルダ移動に失敗しました"]

# --- Notifications ---

@pytest.mark.asyncio
async def test_mark_all_notifications_read(make_store, add_profile, gateway, mocker):
    store, (prompt_id,) = await seeded_store(make_store, add_profile, visibility="Public")
    fan = make_store("fan")
    await fan.hydrate()
    await fan.toggle_like(prompt_id)
    await fan.toggle_favorite(prompt_id)

    store.gateway.set_identity("u1")
    await store.refresh_notifications()
    assert store.unread_count == 2
    assert {n.type for n in store.notifications} == {"like", "favorite"}

    failing = mocker.patch.object(store.gateway, "update", side_effect=fail("update notifications"))
    assert await store.mark_all_notifications_read() is False
    assert store.unread_count == 2

    mocker.stop(failing)
    assert await store.mark_all_notifications_read() is True
    assert store.unread_count == 0
    await store.refresh_notifications()
    assert store.unread_count == 0

# --- Filters / Editor ---

def test_filters_persist_in_session_state(make_store):
    state = LocalState()
    store = make_store("u1", session_state=state)
    store.set_view("trend")
    store.set_current_phase("Debug")
    store.set_visibility_filter("Public")
    store.set_sort_order("likes")
    store.set_search_query("")

    restored = make_store("u1", session_state=state)
    assert restored.view == "trend"
    assert restored.current_phase == "Debug"
    assert restored.visibility_filter == "Public"
    assert restored.sort_order == "likes"

def test_invalid_session_values_are_ignored(make_store):
    state = LocalState()
    state.set("mp-view", "everything")
    state.set("mp-sort", 42)
    store = make_store("u1", session_state=state)
    assert store.view == "library"
    assert store.sort_order == "updated"

def test_invalid_filter_values_raise(make_store):
    store = make_store("u1")
    with pytest.raises(ValueError):
        store.set_view("all")
    with pytest.raises(ValueError):
        store.set_current_phase("Testing")
    with pytest.raises(ValueError):
        store.set_sort_order("random")

@pytest.mark.asyncio
async def test_search_query_filters_and_marks(make_store, add_profile):
    store, _ = await seeded_store(make_store, add_profile)
    await store.add_prompt(PromptInput(title="A", content="x", tags=("x",)))
    await store.add_prompt(PromptInput(title="B", content="y", tags=("y",)))
    store.set_search_query("#x")
    assert [p.title for p in store.get_filtered_prompts()] == ["A"]
    assert store.milestones.is_completed("search")

@pytest.mark.asyncio
async def test_editor_new_and_existing(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)

    store.open_editor()
    draft = store.editing_prompt
    assert draft.id == "" and draft.phase == "Implementation" and draft.visibility == "Public"

    store.set_current_phase("Design")
    store.open_editor()
    assert store.editing_prompt.phase == "Design"

    new_id = await store.save_editor(store.editing_prompt.model_copy(update={"title": "New", "content": "body"}))
    assert new_id and store.editing_prompt is None
    assert store.get_prompt(new_id).phase == "Design"

    existing = store.get_prompt(prompt_id)
    store.open_editor(existing)
    saved = await store.save_editor(existing.model_copy(update={"notes": "remember"}))
    assert saved == prompt_id
    assert store.get_prompt(prompt_id).notes == "remember"

@pytest.mark.asyncio
async def test_prompts_changed_hook(make_store, add_profile):
    calls = []
    add_profile("u1")
    store = make_store("u1", on_prompts_changed=lambda s: calls.append(len(s.prompts)))
    await store.hydrate()
    await store.add_prompt(PromptInput(title="t", content="c"))
    assert calls == [0, 1]

@pytest.mark.asyncio
async def test_read_accessors_return_copies(make_store, add_profile):
    store, (prompt_id,) = await seeded_store(make_store, add_profile)
    store.prompts.clear()
    store.favorites.append("x")
    assert [p.id for p in store.prompts] == [prompt_id]
    assert store.favorites == []
    with pytest.raises(Exception):
        store.prompts[0].title = "mutated"
    assert isinstance(store.prompts[0], PromptEntry)
