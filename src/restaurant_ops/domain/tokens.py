"""
Action-control tokens carried by inline buttons.

A token is `"{verb}_{domain}_{id}"`, e.g. `approve_order_abc123` or
`ready_kitchen_abc123`. The chat client echoes it back verbatim when a button
is pressed, so the format is a contract with whatever handles the callback.
"""

from enum import Enum
from typing import NamedTuple


class ActionVerb(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    READY = "ready"
    DELAY = "delay"


class ActionDomain(str, Enum):
    ORDER = "order"
    PAYMENT = "payment"
    KITCHEN = "kitchen"
    BAR = "bar"


class ActionToken(NamedTuple):
    verb: ActionVerb
    domain: ActionDomain
    target_id: str


def action_token(verb: ActionVerb | str, domain: ActionDomain | str, target_id: str) -> str:
    return f"{ActionVerb(verb).value}_{ActionDomain(domain).value}_{target_id}"


def parse_action_token(token: str) -> ActionToken:
    """Split a token back into its parts.

    Only the first two underscores are separators; ids may contain more.
    Raises ValueError for malformed tokens or unknown verbs/domains.
    """
    parts = token.split("_", 2)
    if len(parts) != 3 or not parts[2]:
        raise ValueError(f"Malformed action token: {token!r}")
    verb, domain, target_id = parts
    return ActionToken(ActionVerb(verb), ActionDomain(domain), target_id)
