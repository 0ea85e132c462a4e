"""Failure playbook: map a failure kind to a safe, minimal fallback payload.

No randomness, no LLM calls.
"""

from enum import Enum

from pydantic import BaseModel


class FailureKind(str, Enum):
    SUP_BLOCK = "sup_block"
    CONTRACTS_FAILED = "contracts_failed"
    QUOTA_EXCEEDED = "quota_exceeded"
    BODY_TOO_LARGE = "body_too_large"
    ABUSE_DETECTED = "abuse_detected"
    INTERNAL_ERROR = "internal_error"
    UNKNOWN = "unknown"


_KIND_ALIASES = {
    "sup_block": FailureKind.SUP_BLOCK,
    "sup-block": FailureKind.SUP_BLOCK,
    "contracts_failed": FailureKind.CONTRACTS_FAILED,
    "contracts-failed": FailureKind.CONTRACTS_FAILED,
    "quota_exceeded": FailureKind.QUOTA_EXCEEDED,
    "quota-exceeded": FailureKind.QUOTA_EXCEEDED,
    "429": FailureKind.QUOTA_EXCEEDED,
    "body_too_large": FailureKind.BODY_TOO_LARGE,
    "body-too-large": FailureKind.BODY_TOO_LARGE,
    "413": FailureKind.BODY_TOO_LARGE,
    "abuse_detected": FailureKind.ABUSE_DETECTED,
    "abuse-detected": FailureKind.ABUSE_DETECTED,
    "internal_error": FailureKind.INTERNAL_ERROR,
    "500": FailureKind.INTERNAL_ERROR,
}


class FailureFallback(BaseModel):
    status: str = "fallback"
    code: str
    title: str
    body: str
    retryable: bool
    cta_label: str | None = None
    cta_href: str | None = None


def normalize_kind(kind: str | FailureKind | None) -> FailureKind:
    if isinstance(kind, FailureKind):
        return kind
    return _KIND_ALIASES.get(str(kind or "").strip().lower(), FailureKind.UNKNOWN)


def pick_failure_fallback(
    kind: str | FailureKind | None,
    route: str | None = None,
    reason: str | None = None,
) -> FailureFallback:
    """
    Pick the fallback payload for a failure.

    Args:
        kind: Failure kind or alias ("sup-block", "429", "500", ...)
        route: Route the user was on; used as the retry link when retryable
        reason: Free-form reason ("claims", "a11y", ...); refines the code for
            guard blocks

    Returns:
        FailureFallback with a stable ``code``
    """
    norm = normalize_kind(kind)
    route = route or None
    reason = (reason or "").strip().lower()

    if norm == FailureKind.SUP_BLOCK:
        return FailureFallback(
            code=f"sup_block.{reason}" if reason else "sup_block.generic",
            title="We paused this draft",
            body="This draft tripped one of our safety checks. Nothing was published, and no changes were applied.",
            retryable=False,
        )

    if norm == FailureKind.CONTRACTS_FAILED:
        return FailureFallback(
            code="contracts_failed.generic",
            title="We couldn't finalize this change",
            body="The result didn't meet the contracts we require for this route. We kept your live content as-is.",
            retryable=False,
        )

    if norm == FailureKind.QUOTA_EXCEEDED:
        return FailureFallback(
            code="quota_exceeded.generic",
            title="Too many requests right now",
            body="You've hit the current usage limit for this workspace. Try again in a bit, or upgrade your plan to get more headroom.",
            retryable=True,
            cta_label="Try again",
            cta_href=route,
        )

    if norm == FailureKind.BODY_TOO_LARGE:
        return FailureFallback(
            code="body_too_large.generic",
            title="This request was too large",
            body="The payload for this request was larger than we accept in one go. Try again with a smaller brief or fewer assets.",
            retryable=True,
        )

    if norm == FailureKind.ABUSE_DETECTED:
        return FailureFallback(
            code="abuse_detected.generic",
            title="We can't help with that",
            body="This request looks like something we're not allowed to assist with. If you think this is a mistake, adjust the wording and try again.",
            retryable=False,
        )

    if norm == FailureKind.INTERNAL_ERROR:
        return FailureFallback(
            code="internal_error.generic",
            title="Something went wrong on our side",
            body="We hit an internal error while trying to handle this request. Your live content is unchanged.",
            retryable=True,
            cta_label="Try again",
            cta_href=route,
        )

    return FailureFallback(
        code="unknown.generic",
        title="We couldn't finish this request",
        body="We weren't able to complete this action. Nothing was changed on your live content.",
        retryable=True,
        cta_label="Try again",
        cta_href=route,
    )
