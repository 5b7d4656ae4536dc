from types import SimpleNamespace

import httpx
import pytest
from groq import APIConnectionError

from termophysics import ai_tutor
from termophysics.ai_tutor import conversation_title


class FakeGroq:
    def __init__(self, reply="Entropy measures the number of microstates.", error=None):
        self.calls = []
        self.reply = reply
        self.error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))

    def create(self, messages, model):
        self.calls.append({"messages": messages, "model": model})
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.reply))])


@pytest.fixture
def fake_groq(monkeypatch):
    client = FakeGroq()
    monkeypatch.setattr(ai_tutor, "get_groq_client", lambda: client)
    return client


def test_title_is_truncated_first_message():
    assert conversation_title("What is entropy?") == "What is entropy?"
    assert conversation_title("x" * 60) == "x" * 50 + "..."


def test_ask_sends_system_prompt_and_history(student, fake_groq):
    response = student.post("/tutor/ask", json={"messages": [{"role": "user", "content": "What is entropy?"}]})

    assert response.status_code == 200
    assert response.get_json()["content"] == "Entropy measures the number of microstates."
    sent = fake_groq.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert "TermoPhysics" in sent[0]["content"]
    assert sent[1] == {"role": "user", "content": "What is entropy?"}


def test_ask_without_api_key_is_unavailable(student):
    response = student.post("/tutor/ask", json={"messages": [{"role": "user", "content": "Hi"}]})
    assert response.status_code == 503


def test_ask_validates_messages(student, fake_groq):
    assert student.post("/tutor/ask", json={"messages": []}).status_code == 400
    assert student.post("/tutor/ask", json={"messages": [{"role": "system", "content": "x"}]}).status_code == 400


def test_conversation_round_trip(student, fake_groq):
    conversation = student.post("/conversations", json={"message": "Why is the sky blue?"}).get_json()
    assert conversation["title"] == "Why is the sky blue?"

    reply = student.post(f"/conversations/{conversation['id']}/messages", json={"content": "Why is the sky blue?"})
    assert reply.status_code == 201
    assert reply.get_json()["role"] == "assistant"

    loaded = student.get(f"/conversations/{conversation['id']}").get_json()
    assert [m["role"] for m in loaded["messages"]] == ["user", "assistant"]
    assert [c["id"] for c in student.get("/conversations").get_json()] == [conversation["id"]]

    assert student.delete(f"/conversations/{conversation['id']}").status_code == 200
    assert student.get(f"/conversations/{conversation['id']}").status_code == 404


def test_conversations_are_private(student, other_student, fake_groq):
    conversation = student.post("/conversations", json={"message": "Hi"}).get_json()
    assert other_student.get(f"/conversations/{conversation['id']}").status_code == 404


def test_provider_failure_keeps_the_question(student, monkeypatch):
    error = APIConnectionError(request=httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions"))
    monkeypatch.setattr(ai_tutor, "get_groq_client", lambda: FakeGroq(error=error))
    conversation = student.post("/conversations", json={"message": "Hi"}).get_json()

    response = student.post(f"/conversations/{conversation['id']}/messages", json={"content": "Hi"})

    assert response.status_code == 503
    loaded = student.get(f"/conversations/{conversation['id']}").get_json()
    assert [m["role"] for m in loaded["messages"]] == ["user"]
