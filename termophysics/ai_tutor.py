import logging

from flask import current_app
from groq import Groq, GroqError

from termophysics.errors import TutorUnavailableError

logger = logging.getLogger(__name__)

PHYSICS_SYSTEM_PROMPT = """You are TermoPhysics, an expert AI physics tutor. You provide clear, accurate, and engaging explanations of physics concepts.

Your expertise covers classical mechanics, thermodynamics, electromagnetism, quantum mechanics, nuclear physics, relativity, waves and optics, and astrophysics.

Guidelines:
1. Use markdown formatting for clarity (headers, bold, lists, equations)
2. Include relevant formulas using plain text (e.g., E = mc^2, F = ma)
3. Provide real-world examples and applications
4. Break down complex concepts into digestible parts
5. If a question is unclear, ask for clarification
6. Keep responses focused and educational"""

TITLE_LENGTH = 50


def get_groq_client():
    api_key = current_app.config.get("GROQ_API_KEY")
    if not api_key:
        return None
    return Groq(api_key=api_key)


def conversation_title(first_message):
    """Title a conversation after its first message."""
    text = (first_message or "").strip()
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + "..."
    return text or "New conversation"


def ask_tutor(history):
    """
    history: list of {"role": "user" | "assistant", "content": str}, oldest first.
    Returns the tutor's reply text.
    """
    client = get_groq_client()
    if not client:
        raise TutorUnavailableError()

    messages = [{"role": "system", "content": PHYSICS_SYSTEM_PROMPT}]
    messages.extend({"role": m["role"], "content": m["content"]} for m in history)
    try:
        completion = client.chat.completions.create(
            messages=messages,
            model=current_app.config["GROQ_MODEL"],
        )
    except GroqError as exc:
        logger.exception("Tutor request failed")
        raise TutorUnavailableError("The AI tutor is unavailable right now. Please try again.") from exc

    reply = completion.choices[0].message.content
    if not reply:
        raise TutorUnavailableError("The AI tutor returned an empty answer.")
    return reply
