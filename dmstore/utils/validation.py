"""Boundary checks for raw message fields.

The ``check_*`` helpers are pure: they return a sparse mapping of
field name -> reason holding only the fields that failed, so an empty dict
means the input is acceptable. The ``parse_*`` helpers run the same checks
and either raise :class:`ValidationError` or hand back typed values.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId

from dmstore.models.message import NewMessage
from dmstore.utils.errors import ValidationError


FIELD_LABELS = {
    "senderId": "Sender ID",
    "receiverId": "Receiver ID",
    "text": "Text",
}


def _label(field: str) -> str:
    return FIELD_LABELS.get(field, field)


def missing_fields(**values: Any) -> Dict[str, str]:
    return {field: f"{_label(field)} is required" for field, value in values.items() if not value}


def is_valid_id(value: Any) -> bool:
    # ObjectId.is_valid also accepts 12-byte strings; user ids must be hex
    return isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value)


def malformed_ids(**values: Any) -> Dict[str, str]:
    return {
        field: f"{_label(field)} is not a valid identifier"
        for field, value in values.items()
        if value and not is_valid_id(value)
    }


def check_participants(sender_id: Any, receiver_id: Any) -> Dict[str, str]:
    errors = malformed_ids(senderId=sender_id, receiverId=receiver_id)
    errors.update(missing_fields(senderId=sender_id, receiverId=receiver_id))
    return errors


def _is_utf8(value: str) -> bool:
    # lone surrogates survive JSON decoding but cannot be stored as BSON
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def check_new_message(sender_id: Any, receiver_id: Any, text: Any) -> Dict[str, str]:
    errors = check_participants(sender_id, receiver_id)
    if text and not isinstance(text, str):
        errors["text"] = "Text must be a string"
    elif text and not _is_utf8(text):
        errors["text"] = "Text must be valid UTF-8"
    errors.update(missing_fields(text=text))
    return errors


def parse_participants(sender_id: Any, receiver_id: Any) -> Tuple[ObjectId, ObjectId]:
    errors = check_participants(sender_id, receiver_id)
    if errors:
        raise ValidationError(errors)
    return ObjectId(sender_id), ObjectId(receiver_id)


def parse_new_message(
    sender_id: Any,
    receiver_id: Any,
    text: Any,
    sent_at: Optional[datetime] = None,
    read: Optional[bool] = None,
) -> NewMessage:
    errors = check_new_message(sender_id, receiver_id, text)
    if errors:
        raise ValidationError(errors)
    return NewMessage(ObjectId(sender_id), ObjectId(receiver_id), text, sent_at, read)


def parse_receiver(receiver_id: Any) -> ObjectId:
    if not is_valid_id(receiver_id):
        raise ValidationError({"receiverId": "Valid user ID is required"})
    return ObjectId(receiver_id)
