import logging
from datetime import datetime

from flask import Blueprint, request, jsonify

from termophysics import db
from termophysics.ai_tutor import ask_tutor, conversation_title
from termophysics.auth import current_user, login_required
from termophysics.errors import NotFoundError, ValidationError
from termophysics.models import Conversation, Message
from termophysics.persistence import commit, delete, get_or_404
from termophysics.validators import require_text

tutor = Blueprint('tutor', __name__)
logger = logging.getLogger(__name__)


def _own_conversation(conversation_id):
    conversation = get_or_404(Conversation, conversation_id, "Conversation not found.")
    if conversation.user_id != current_user().id:
        raise NotFoundError("Conversation not found.")
    return conversation


def _history(data):
    messages = data.get('messages')
    if not isinstance(messages, list) or not messages:
        raise ValidationError("messages must be a non-empty list.")
    history = []
    for message in messages:
        if not isinstance(message, dict) or message.get('role') not in ('user', 'assistant'):
            raise ValidationError("Each message needs a role of 'user' or 'assistant'.")
        history.append({"role": message['role'], "content": require_text(message.get('content'), "Content")})
    return history


@tutor.route('/tutor/ask', methods=['POST'])
@login_required
def ask():
    """Stateless tutor call for clients that keep the history themselves."""
    history = _history(request.get_json(silent=True) or {})
    return jsonify({"role": "assistant", "content": ask_tutor(history)})


# --- CONVERSATIONS ---
@tutor.route('/conversations', methods=['GET'])
@login_required
def conversations():
    rows = (Conversation.query.filter_by(user_id=current_user().id)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc()).all())
    return jsonify([c.to_dict() for c in rows])


@tutor.route('/conversations', methods=['POST'])
@login_required
def new_conversation():
    data = request.get_json(silent=True) or {}
    conversation = Conversation(user_id=current_user().id, title=conversation_title(data.get('message')))
    db.session.add(conversation)
    commit("start a conversation")
    return jsonify(conversation.to_dict()), 201


@tutor.route('/conversations/<int:conversation_id>', methods=['GET'])
@login_required
def load_conversation(conversation_id):
    conversation = _own_conversation(conversation_id)
    data = conversation.to_dict()
    data["messages"] = [m.to_dict() for m in conversation.messages]
    return jsonify(data)


@tutor.route('/conversations/<int:conversation_id>', methods=['DELETE'])
@login_required
def delete_conversation(conversation_id):
    delete(_own_conversation(conversation_id), "delete a conversation")
    return jsonify({"message": "Conversation deleted."})


@tutor.route('/conversations/<int:conversation_id>/messages', methods=['POST'])
@login_required
def send_message(conversation_id):
    conversation = _own_conversation(conversation_id)
    content = require_text((request.get_json(silent=True) or {}).get('content'), "Message")

    # The question is kept even when the tutor call fails
    db.session.add(Message(conversation_id=conversation.id, role='user', content=content))
    conversation.updated_at = datetime.utcnow()
    commit("save a message")

    history = [{"role": m.role, "content": m.content} for m in conversation.messages]
    reply = ask_tutor(history)

    assistant_message = Message(conversation_id=conversation.id, role='assistant', content=reply)
    db.session.add(assistant_message)
    conversation.updated_at = datetime.utcnow()
    commit("save the tutor reply")
    logger.info("Tutor answered in conversation %s", conversation.id)
    return jsonify(assistant_message.to_dict()), 201
