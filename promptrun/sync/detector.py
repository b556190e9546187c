"""Change detection between two prompt snapshots."""

from typing import Optional

from .models import ChangeDiff, FieldChange, PromptSnapshot


def detect_changes(
    previous: PromptSnapshot,
    candidate: PromptSnapshot,
) -> Optional[ChangeDiff]:
    """
    Compare the synchronized fields of two snapshots.

    Only version, prompt text, temperature, tag and updated_at are compared.
    The id and model descriptor are stable for a session and ignored.
    A difference in updated_at alone is reported as a change.

    Args:
        previous: The snapshot currently held by the session.
        candidate: The freshly fetched or pushed snapshot.

    Returns:
        A ChangeDiff holding only the differing fields, or None if all match.
    """
    if previous is candidate:
        return None

    diff = ChangeDiff(
        version=_change(previous.version, candidate.version),
        content=_change(previous.prompt, candidate.prompt),
        temperature=_change(previous.temperature, candidate.temperature),
        tag=_change(previous.tag, candidate.tag),
        updated_at=_change(previous.updated_at, candidate.updated_at),
    )
    return None if diff.is_empty else diff


def _change(old, new) -> Optional[FieldChange]:
    if old == new:
        return None
    return FieldChange(from_value=old, to_value=new)


__all__ = ["detect_changes"]
