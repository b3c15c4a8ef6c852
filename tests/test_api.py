"""Route tests against the fake-backed service container."""

import re

import httpx

from fakes import section_row
from sales_coach.errors import CompletionError
from sales_coach.services import activities as activities_module
from sales_coach.services.retrieval import FALLBACK_ANSWER

CONTENT = "# Pricing\n\n" + "Discounts above ten percent need approval. " * 60


def _create_topic(client, title="Pricing"):
    response = client.post("/api/topics", json={"title": title, "description": "Pricing rules"})
    assert response.status_code == 201
    return response.json()["data"]


class TestService:
    def test_root_and_health(self, client):
        assert client.get("/").json()["docs"] == "/docs"
        assert client.get("/health").json() == {"status": "healthy"}

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Not Found"}


class TestTopics:
    def test_crud(self, client):
        topic = _create_topic(client)
        assert topic["title"] == "Pricing"

        listed = client.get("/api/topics").json()
        assert listed["status"] == "success"
        assert [t["id"] for t in listed["data"]] == [topic["id"]]

        updated = client.patch(f"/api/topics/{topic['id']}", json={"title": "Pricing 2"}).json()
        assert updated["data"]["title"] == "Pricing 2"

        assert client.get(f"/api/topics/{topic['id']}").json()["data"]["title"] == "Pricing 2"

        assert client.delete(f"/api/topics/{topic['id']}").status_code == 200
        assert client.get(f"/api/topics/{topic['id']}").status_code == 404

    def test_missing_topic(self, client):
        response = client.get("/api/topics/missing")
        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Topic not found"}

    def test_validation_error_is_400(self, client):
        response = client.post("/api/topics", json={"title": ""})
        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["message"].startswith("title")

    def test_upload_content(self, client, database):
        topic = _create_topic(client)

        response = client.post(f"/api/topics/{topic['id']}/upload", json={"content": CONTENT})

        assert response.status_code == 201
        report = response.json()["data"]
        assert report["succeeded"] is True
        assert report["title"] == "Pricing"
        assert report["inserted_count"] == report["total_chunks"] == len(database.tables["topic_sections"])
        assert report["total_chunks"] > 1

    def test_upload_failure_is_400_with_report(self, client, database):
        database.fail_insert_after = 0

        response = client.post("/api/topics/t1/upload", json={"content": CONTENT})

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Failed to insert section"
        assert body["data"]["results"][0]["status"] == "failed"

    def test_blank_upload_is_rejected(self, client, database):
        topic = _create_topic(client)

        response = client.post(f"/api/topics/{topic['id']}/upload", json={"content": " \n " * 1000})

        assert response.status_code == 400
        assert response.json()["message"].startswith("content")
        assert "topic_sections" not in database.tables

    def test_ingest_document(self, client, document_store, database):
        topic = _create_topic(client)
        client.post("/api/documents/upload", files={"file": ("guide.md", b"# Guide\n\nShort.", "text/markdown")})
        key = next(iter(document_store.objects))

        response = client.post(f"/api/topics/{topic['id']}/ingest-document", json={"bucket_path": key})

        assert response.status_code == 201
        assert response.json()["data"]["title"] == "Guide"

    def test_query(self, client, database, llm):
        topic = _create_topic(client)
        database.match_rows = [section_row("s1", markdown="Discounts need **approval**.", topic_id=topic["id"])]

        response = client.post(f"/api/topics/{topic['id']}/query", json={"query": "Who approves discounts?"})

        data = response.json()["data"]
        assert data["answer"] == llm.default_reply
        assert data["context"][0]["content"] == "Discounts need **approval**."
        assert database.match_calls[0]["scope_filter"] == topic["id"]
        assert "Pricing" in llm.calls[0]["messages"][0]["content"]

    def test_query_without_matches_returns_fallback(self, client, llm):
        topic = _create_topic(client)
        data = client.post(f"/api/topics/{topic['id']}/query", json={"query": "Anything?"}).json()["data"]
        assert data == {"answer": FALLBACK_ANSWER, "context": []}
        assert llm.calls == []

    def test_query_unknown_topic(self, client):
        response = client.post("/api/topics/missing/query", json={"query": "q"})
        assert response.status_code == 404

    def test_generate_learning_path(self, client, database):
        database.tables["topics"] = [
            {
                "id": "t1",
                "title": "Pricing",
                "description": "Pricing rules",
                "topic_sections": [
                    {"id": "s1", "content_markdown": "Short intro.", "metadata": {"title": "Intro", "chunkIndex": 0}}
                ],
            }
        ]

        response = client.post("/api/topics/t1/generate")

        assert response.status_code == 200
        path = response.json()["data"]
        assert path["topic_id"] == "t1"
        assert path["duration_estimate_hours"] == 2
        assert len(path["activity_ids"]) == 1
        assert database.tables["activities"][0]["learning_path_id"] == path["id"]


class TestLearningPaths:
    def test_create_requires_description(self, client):
        response = client.post("/api/learning-paths", json={"title": "Onboarding"})
        assert response.status_code == 400
        assert response.json()["message"].startswith("description")

    def test_crud_and_activities(self, client, database):
        created = client.post("/api/learning-paths", json={"title": "Onboarding", "description": "Week one"})
        assert created.status_code == 201
        path_id = created.json()["data"]["id"]

        response = client.post(
            f"/api/learning-paths/{path_id}/activities",
            json={
                "activities": [
                    {"title": "Welcome", "type": "slide", "config": {"content": "# Hello"}},
                    {
                        "title": "Check",
                        "type": "quiz",
                        "config": {"question": "Ready?", "options": ["Yes", "No"], "correct_answer": 0},
                    },
                ]
            },
        )
        assert response.status_code == 201
        stored = database.tables["activities"]
        assert [a["type"] for a in stored] == ["slide", "quiz"]
        assert all(a["learning_path_id"] == path_id for a in stored)

        assert client.get(f"/api/learning-paths/{path_id}").json()["data"]["title"] == "Onboarding"
        updated = client.put(f"/api/learning-paths/{path_id}", json={"duration_estimate_hours": 3}).json()
        assert updated["data"][0]["duration_estimate_hours"] == 3
        assert client.delete(f"/api/learning-paths/{path_id}").status_code == 200
        assert client.get(f"/api/learning-paths/{path_id}").status_code == 404

    def test_invalid_activity_is_rejected(self, client):
        response = client.post(
            "/api/learning-paths/lp1/activities",
            json={"activities": [{"title": "x", "type": "quiz", "config": {"question": "?", "options": ["a"]}}]},
        )
        assert response.status_code == 400

    def test_add_embed_activity(self, client, database, llm):
        response = client.post(
            "/api/learning-paths/lp1/activities/embed",
            json={"title": "Discovery demo", "url": "https://v.test/42", "embed_type": "video"},
        )

        assert response.status_code == 201
        row = database.tables["activities"][0]
        assert response.json()["data"] == {"id": row["id"]}
        assert row["type"] == "embed"
        assert row["learning_path_id"] == "lp1"
        assert row["config"]["embed_type"] == "video"
        assert llm.calls == []

    def test_embed_activity_needs_known_kind(self, client):
        response = client.post(
            "/api/learning-paths/lp1/activities/embed",
            json={"title": "Demo", "url": "https://v.test/42", "embed_type": "podcast"},
        )
        assert response.status_code == 400

    def test_generate_from_document(self, client, llm, monkeypatch):
        async def fake_fetch(url, timeout=5.0, client=None):
            return httpx.Response(200, content=b"Always confirm budget.", headers={"content-type": "text/plain"})

        monkeypatch.setattr(activities_module, "fetch_bytes", fake_fetch)
        llm.json_replies = [{"activities": [{"title": "Budget", "type": "slide", "config": {"content": "Confirm"}}]}]

        response = client.post(
            "/api/learning-paths/lp1/activities/generate", json={"document_url": "https://files.test/notes.txt"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["activities"][0]["type"] == "slide"


class TestDocuments:
    def test_upload_list_download_delete(self, client, document_store):
        response = client.post(
            "/api/documents/upload", files={"file": ("deck notes.md", b"# Deck", "text/markdown")}
        )
        assert response.status_code == 201
        uploaded = response.json()["data"]
        assert re.fullmatch(r"\d+_deck_notes\.md", uploaded["path"])
        assert uploaded["name"] == "deck notes.md"
        assert uploaded["size"] == 6
        assert uploaded["url"].endswith(uploaded["path"])
        key = uploaded["path"]

        listed = client.get("/api/documents").json()["data"]
        assert [d["bucket_path"] for d in listed] == [key]
        assert listed[0]["name"] == "deck_notes.md"
        assert listed[0]["type"] == "text/markdown"

        assert client.get(f"/api/documents/{key}").json()["data"]["size"] == 6

        download = client.get(f"/api/documents/{key}/download")
        assert download.content == b"# Deck"
        assert download.headers["content-type"].startswith("text/markdown")
        assert 'filename="deck_notes.md"' in download.headers["content-disposition"]

        assert client.delete(f"/api/documents/{key}").status_code == 200
        assert document_store.objects == {}
        assert client.get(f"/api/documents/{key}").status_code == 404

    def test_rejects_unsupported_type(self, client, document_store):
        response = client.post("/api/documents/upload", files={"file": ("logo.png", b"\x89PNG", "image/png")})
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid file type")
        assert document_store.objects == {}

    def test_rejects_large_file(self, client):
        data = b"x" * (10 * 1024 * 1024 + 1)
        response = client.post("/api/documents/upload", files={"file": ("big.txt", data, "text/plain")})
        assert response.status_code == 400
        assert response.json()["message"] == "File size exceeds 10MB limit"


class TestAI:
    def test_chat_uses_fast_model(self, client, llm):
        response = client.post("/api/ai/chat", json={"message": "How do I open a call?", "topic": "Cold calling"})

        assert response.json()["data"]["response"] == llm.default_reply
        call = llm.calls[0]
        assert call["model"] == llm.fast_model
        assert "Cold calling" in call["messages"][0]["content"]
        assert call["messages"][1]["content"] == "How do I open a call?"

    def test_feedback(self, client, llm):
        llm.json_replies = [
            {"product_knowledge": 95, "communication": 95, "discovery": 95, "objection_handling": 95},
            {"winning_talking_points": []},
            {"primary_finding": "a", "improvement_area": "b", "next_session_focus": "c"},
        ]

        response = client.post(
            "/api/ai/feedback",
            json={"transcript": "Rep: hello", "scenario_context": {"persona": "CFO"}, "scenario_performance": {"x": 95}},
        )

        data = response.json()["data"]
        assert data["readiness"]["status"] == "Exceeds Ready"
        assert data["key_insight"]["primary_finding"] == "a"

    def test_tts(self, client, llm):
        response = client.post("/api/tts", json={"text": "Welcome", "voice": "nova"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == llm.audio
        assert llm.calls[0] == {"tts": "Welcome", "voice": "nova"}

    def test_tts_requires_text(self, client):
        assert client.post("/api/tts", json={}).status_code == 400

    def test_tts_failure(self, client, llm):
        llm.error = CompletionError("Failed to generate voice")
        response = client.post("/api/tts", json={"text": "Welcome"})
        assert response.status_code == 502
        assert response.json() == {"status": "error", "message": "Failed to generate voice"}
