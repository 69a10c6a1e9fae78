from pathlib import Path

from fastapi.testclient import TestClient

import config
from db import database
from main import app
from routes import flashcards, study

MEANINGS = {f"w{i}": f"m{i}" for i in range(1, 7)}


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[session]",
                "min_words = 5",
                "completion_xp = 50",
                "mastered_word_xp = 10",
                "quit_penalty = 30",
                "feedback_delay_ms = 0",
                "",
                "[grading]",
                "near_miss_threshold = 0.85",
            ]
        ),
        encoding="utf-8",
    )


def _client(tmp_path, monkeypatch) -> TestClient:
    config_dir = tmp_path / ".vocabquest"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "vocabquest.db")
    monkeypatch.setattr(study, "SESSIONS", {})
    monkeypatch.setattr(flashcards, "DECKS", {})
    for key in ("SESSION_MIN_WORDS", "SESSION_QUIT_PENALTY", "SESSION_COMPLETION_XP", "SESSION_MASTERED_WORD_XP"):
        monkeypatch.delenv(key, raising=False)

    database.init_db()
    return TestClient(app)


def _seed(client: TestClient, word_count: int = 5):
    response = client.post("/tables/", json={"name": "Spanish", "columns": [{"name": "meaning"}]})
    assert response.status_code == 201
    table_id = response.json()["id"]

    item_ids = []
    for i in range(1, word_count + 1):
        response = client.post(
            f"/tables/{table_id}/items",
            json={"keyword": f"w{i}", "data": {"meaning": f"m{i}"}, "tags": ["verbs"] if i % 2 else []},
        )
        assert response.status_code == 201
        item_ids.append(response.json()["id"])

    response = client.post(
        "/relations/",
        json={
            "table_id": table_id,
            "name": "word to meaning",
            "question_cols": ["keyword"],
            "answer_cols": ["meaning"],
            "modes": ["Typing"],
        },
    )
    assert response.status_code == 201
    return table_id, item_ids, response.json()["id"]


def _start(client, table_id, item_ids, relation_id):
    return client.post(
        "/study/sessions",
        json={
            "table_ids": [table_id],
            "modes": ["Typing"],
            "relation_ids": [relation_id],
            "word_ids": item_ids,
            "seed": 11,
        },
    )


def test_full_session_commits_once(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, relation_id = _seed(client)

    response = _start(client, table_id, item_ids, relation_id)
    assert response.status_code == 201
    session = response.json()
    session_id = session["session_id"]
    assert session["remaining"] == 5

    commit = None
    for _ in range(30):
        keyword = session["question"]["prompt"][0]["value"]
        response = client.post(
            f"/study/sessions/{session_id}/answer",
            json={"user_text": MEANINGS[keyword].upper()},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["result"]["correct"] is True
        session = body["session"]
        if body["commit"] is not None:
            commit = body["commit"]
            break

    assert commit is not None
    assert commit["xp_delta"] == 100
    assert commit["global_stats"]["completed_session_count"] == 1
    assert session["complete"] is True
    assert session["question"] is None

    retry = client.post(f"/study/sessions/{session_id}/complete")
    assert retry.status_code == 200
    assert retry.json() == {"commit": None, "committed": "completed"}
    assert client.post(f"/study/sessions/{session_id}/answer", json={"user_text": "m1"}).status_code == 409

    rewards = client.get("/rewards/").json()
    assert rewards["xp"] == 100
    assert rewards["current_tier"]["name"] == "Master"
    assert rewards["events"][-1]["type"] == "session_complete"

    history = client.get("/sessions/").json()
    assert len(history) == 1
    assert history[0]["status"] == "completed"
    assert history[0]["table_names"] == ["Spanish"]

    items = client.get(f"/tables/{table_id}/items").json()
    assert all(item["stats"]["passed2"] == 1 for item in items)
    assert all(item["stats"]["in_queue_count"] == 1 for item in items)


def test_quit_is_penalized_once(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, relation_id = _seed(client)
    session_id = _start(client, table_id, item_ids, relation_id).json()["session_id"]

    first = client.post(f"/study/sessions/{session_id}/quit").json()
    second = client.post(f"/study/sessions/{session_id}/quit").json()
    assert first["commit"]["xp_delta"] == -30
    assert second == {"commit": None, "committed": "quit"}

    assert client.get("/rewards/").json()["global_stats"]["abandoned_session_count"] == 1
    items = client.get(f"/tables/{table_id}/items").json()
    assert all(item["stats"]["quit_flag"] for item in items)
    # quit words jump to the top of the priority list
    assert items[0]["priority_score"] >= 0.7


def test_starting_a_new_session_abandons_the_open_one(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, relation_id = _seed(client)
    first_id = _start(client, table_id, item_ids, relation_id).json()["session_id"]
    second = _start(client, table_id, item_ids, relation_id)
    assert second.status_code == 201

    history = client.get("/sessions/").json()
    assert [(record["id"], record["status"]) for record in history] == [(first_id, "quit")]
    assert client.get(f"/study/sessions/{first_id}").status_code == 404


def test_session_needs_minimum_words(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, relation_id = _seed(client, word_count=4)
    response = _start(client, table_id, item_ids, relation_id)
    assert response.status_code == 400
    assert "at least 5" in response.json()["detail"]

    response = client.post(
        "/study/sessions",
        json={"table_ids": [table_id], "modes": ["Typing"], "relation_ids": [relation_id]},
    )
    assert response.status_code == 400


def test_session_from_selection(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, _, relation_id = _seed(client, word_count=6)

    preview = client.post(
        "/study/select",
        json={"table_ids": [table_id], "sort_criteria": ["lowest_rank_point", "random"], "word_count": 3, "seed": 1},
    )
    assert preview.status_code == 200
    assert len(preview.json()) == 3

    tagged = client.post(
        "/study/select",
        json={"table_ids": [table_id], "tags": ["verbs"], "word_count": 10},
    ).json()
    assert sorted(entry["keyword"] for entry in tagged) == ["w1", "w3", "w5"]

    response = client.post(
        "/study/sessions",
        json={
            "table_ids": [table_id],
            "modes": ["Typing"],
            "relation_ids": [relation_id],
            "selection": {"table_ids": [table_id], "sort_criteria": ["priority_score"], "word_count": 5},
        },
    )
    assert response.status_code == 201
    assert response.json()["word_count"] == 5


def test_table_and_relation_validation(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, _ = _seed(client)

    assert client.post("/tables/", json={"name": "Spanish"}).status_code == 409
    duplicate = client.post(f"/tables/{table_id}/items", json={"keyword": "W1", "data": {"meaning": "x"}})
    assert duplicate.status_code == 409
    unknown = client.post(f"/tables/{table_id}/items", json={"keyword": "w9", "data": {"colour": "red"}})
    assert unknown.status_code == 400

    bad_relation = client.post(
        "/relations/",
        json={
            "table_id": table_id,
            "name": "broken",
            "question_cols": ["keyword"],
            "answer_cols": ["colour"],
            "modes": ["Typing"],
        },
    )
    assert bad_relation.status_code == 400
    overlapping = client.post(
        "/relations/",
        json={
            "table_id": table_id,
            "name": "overlap",
            "question_cols": ["keyword"],
            "answer_cols": ["keyword"],
            "modes": ["Typing"],
        },
    )
    assert overlapping.status_code == 422

    renamed = client.patch(f"/tables/{table_id}/columns/meaning", json={"new_name": "gloss"})
    assert renamed.status_code == 200
    assert [column["name"] for column in renamed.json()["columns"]] == ["gloss"]
    items = client.get(f"/tables/{table_id}/items").json()
    assert all("gloss" in item["data"] for item in items)

    tagged = client.post(f"/tables/{table_id}/tags", json={"item_ids": item_ids[:2], "tags": ["Review"]})
    assert tagged.status_code == 200
    filtered = client.get(f"/tables/{table_id}/items", params={"tag": "review"}).json()
    assert sorted(item["id"] for item in filtered) == sorted(item_ids[:2])


def test_flashcards_persist_status(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, _, relation_id = _seed(client)

    deck = client.post("/flashcards/decks", json={"table_ids": [table_id], "relation_ids": [relation_id], "seed": 2})
    assert deck.status_code == 201
    body = deck.json()
    assert body["remaining"] == 5
    card_item = body["card"]["item_id"]

    answered = client.post(f"/flashcards/decks/{body['deck_id']}/answer", json={"knew_it": True}).json()
    assert answered["answered"]["item_id"] == card_item
    assert answered["answered"]["status"] == "Good"
    assert answered["remaining"] == 5

    items = {item["id"]: item for item in client.get(f"/tables/{table_id}/items").json()}
    assert items[card_item]["stats"]["flashcard_status"] == "Good"

    assert client.delete(f"/flashcards/decks/{body['deck_id']}").status_code == 204
    assert client.get(f"/flashcards/decks/{body['deck_id']}").status_code == 404


def test_stats_overview(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, _ = _seed(client)
    client.post(f"/tables/{table_id}/items/{item_ids[0]}/reset")

    overview = client.get("/stats/", params={"top": 3}).json()
    assert overview["tables"][0]["word_count"] == 5
    assert overview["tables"][0]["avg_rank_point"] == 0
    assert len(overview["top_priority"]) == 3


def test_study_completion_keeps_flashcard_status(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, relation_id = _seed(client)

    session = _start(client, table_id, item_ids, relation_id).json()
    deck = client.post("/flashcards/decks", json={"table_ids": [table_id], "relation_ids": [relation_id]}).json()
    carded = deck["card"]["item_id"]
    client.post(f"/flashcards/decks/{deck['deck_id']}/answer", json={"knew_it": True})

    for _ in range(30):
        keyword = session["question"]["prompt"][0]["value"]
        body = client.post(
            f"/study/sessions/{session['session_id']}/answer",
            json={"user_text": MEANINGS[keyword]},
        ).json()
        session = body["session"]
        if body["commit"] is not None:
            break

    items = {item["id"]: item for item in client.get(f"/tables/{table_id}/items").json()}
    assert items[carded]["stats"]["flashcard_status"] == "Good"
    assert items[carded]["stats"]["passed2"] == 1
    assert items[carded]["stats"]["passed1"] == 0


def test_new_deck_replaces_the_open_one(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, _, relation_id = _seed(client)
    body = {"table_ids": [table_id], "relation_ids": [relation_id]}
    first = client.post("/flashcards/decks", json=body).json()["deck_id"]
    second = client.post("/flashcards/decks", json=body).json()["deck_id"]
    assert client.get(f"/flashcards/decks/{first}").status_code == 404
    assert client.get(f"/flashcards/decks/{second}").status_code == 200
    assert list(flashcards.DECKS) == [second]


def test_column_changes_keep_relations_consistent(tmp_path, monkeypatch):
    client = _client(tmp_path, monkeypatch)
    table_id, item_ids, relation_id = _seed(client)

    removed = client.delete(f"/tables/{table_id}/columns/meaning")
    assert removed.status_code == 409
    assert "word to meaning" in removed.json()["detail"]

    client.patch(f"/tables/{table_id}/columns/meaning", json={"new_name": "gloss"})
    relation = client.get("/relations/", params={"table_id": table_id}).json()[0]
    assert relation["answer_cols"] == ["gloss"]

    session = _start(client, table_id, item_ids, relation_id).json()
    keyword = session["question"]["prompt"][0]["value"]
    empty = client.post(f"/study/sessions/{session['session_id']}/answer", json={"user_text": ""}).json()
    assert empty["result"]["correct"] is False
    assert empty["result"]["expected"] == MEANINGS[keyword]

    assert client.delete(f"/relations/{relation_id}").status_code == 204
    assert client.delete(f"/tables/{table_id}/columns/gloss").status_code == 200
