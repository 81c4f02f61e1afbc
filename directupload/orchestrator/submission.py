"""Merge of a signed policy into the storage form submission."""
from typing import Dict

from ..errors import MalformedPolicy
from ..models import UploadPolicy


def build_submission_fields(policy: UploadPolicy) -> Dict[str, str]:
    """
    Copy the policy fields verbatim into the storage form, in form order.

    Raises:
        MalformedPolicy: a field is empty
    """
    fields: Dict[str, str] = {}
    missing = []
    for attr, wire_name in UploadPolicy.WIRE_NAMES.items():
        value = getattr(policy, attr, None)
        if not value:
            missing.append(wire_name)
            continue
        fields[wire_name] = value

    if missing:
        raise MalformedPolicy(
            f"cannot build submission, policy is missing: {', '.join(missing)}",
            missing_fields=missing,
        )
    return fields


def parse_success_status(policy: UploadPolicy) -> int:
    """Return the policy's success_action_status as an HTTP status code."""
    try:
        status = int(policy.success_action_status)
    except (TypeError, ValueError):
        raise MalformedPolicy(
            f"success_action_status is not a status code: {policy.success_action_status!r}"
        ) from None
    if not 100 <= status <= 599:
        raise MalformedPolicy(f"success_action_status out of range: {status}")
    return status
