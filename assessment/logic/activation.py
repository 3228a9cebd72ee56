"""Single-active-questionnaire controller.

At most one questionnaire is active at a time. Activation is one
transaction against the store that switches the target on and every other
questionnaire off in the same statement, so a failure leaves the previous
state untouched and concurrent activations cannot leave two active. Create
and update with ``is_active=True`` go through the same ``activate``
primitive after the record itself has been written inactive.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Optional

from assessment.logic.errors import NotFoundError
from assessment.logic.repository_questionnaires import (
    activate_exclusive,
    delete_questionnaire_row,
    get_questionnaire_row,
    insert_questionnaire_row,
    list_active_questionnaires,
    set_active_flag,
    update_questionnaire_fields,
)
from assessment.logic.validation import parse_payload
from assessment.models.questionnaire import Questionnaire, QuestionnaireCreate, QuestionnaireUpdate

logger = logging.getLogger(__name__)


def _not_found(questionnaire_id: str) -> NotFoundError:
    return NotFoundError("Questionnaire not found", context={"questionnaire_id": questionnaire_id})


def activate(questionnaire_id: str) -> None:
    """Make ``questionnaire_id`` the only active questionnaire."""
    deactivated = activate_exclusive(questionnaire_id)
    if deactivated is None:
        raise _not_found(questionnaire_id)
    logger.info("questionnaire_activated questionnaire_id=%s deactivated=%s", questionnaire_id, deactivated)


def deactivate(questionnaire_id: str) -> None:
    """Switch off one questionnaire; others are untouched."""
    if set_active_flag(questionnaire_id, False) == 0:
        raise _not_found(questionnaire_id)
    logger.info("questionnaire_deactivated questionnaire_id=%s", questionnaire_id)


def get_questionnaire(questionnaire_id: str) -> Questionnaire:
    found = get_questionnaire_row(questionnaire_id)
    if found is None:
        raise _not_found(questionnaire_id)
    return found


def get_active_questionnaire() -> Optional[Questionnaire]:
    """Return the active questionnaire, or None when none is active.

    If flags written outside ``activate`` left more than one active, the
    most recently updated one is returned and a warning is logged.
    """
    active = list_active_questionnaires()
    if not active:
        return None
    if len(active) > 1:
        logger.warning(
            "multiple_active_questionnaires count=%s ids=%s",
            len(active),
            ",".join(q.questionnaire_id for q in active),
        )
    return active[0]


def create_questionnaire(payload: "QuestionnaireCreate | Mapping[str, Any]") -> Questionnaire:
    data = parse_payload(QuestionnaireCreate, payload)
    questionnaire_id = str(uuid.uuid4())
    insert_questionnaire_row(questionnaire_id, data.title, data.description)
    logger.info("questionnaire_created questionnaire_id=%s activate=%s", questionnaire_id, data.is_active)
    if data.is_active:
        activate(questionnaire_id)
    return get_questionnaire(questionnaire_id)


def update_questionnaire(questionnaire_id: str, changes: "QuestionnaireUpdate | Mapping[str, Any]") -> Questionnaire:
    """Apply field changes, then route any ``is_active`` change through the controller."""
    upd = parse_payload(QuestionnaireUpdate, changes)
    fields = upd.model_dump(exclude_unset=True)
    is_active = fields.pop("is_active", None)

    if update_questionnaire_fields(questionnaire_id, fields) == 0:
        raise _not_found(questionnaire_id)
    if is_active is True:
        activate(questionnaire_id)
    elif is_active is False:
        deactivate(questionnaire_id)
    logger.info("questionnaire_updated questionnaire_id=%s fields=%s", questionnaire_id, ",".join(sorted(fields)))
    return get_questionnaire(questionnaire_id)


def delete_questionnaire(questionnaire_id: str) -> Questionnaire:
    """Delete the questionnaire record only; its questions and bands are kept."""
    current = get_questionnaire(questionnaire_id)
    if delete_questionnaire_row(questionnaire_id) == 0:
        raise _not_found(questionnaire_id)
    logger.info("questionnaire_deleted questionnaire_id=%s was_active=%s", questionnaire_id, current.is_active)
    return current


__all__ = [
    "activate",
    "deactivate",
    "get_questionnaire",
    "get_active_questionnaire",
    "create_questionnaire",
    "update_questionnaire",
    "delete_questionnaire",
]
