"""
Identifier generation.

Every entity gets its id once, at creation, and keeps it for life.
Ids are "<prefix>-<random hex>" so a reader can tell what kind of node
an id names when it shows up in a rule or a log line.
"""

import uuid


def new_id(prefix: str = "") -> str:
    suffix = uuid.uuid4().hex[:12]
    return f"{prefix}-{suffix}" if prefix else suffix


class EntityId:
    """Entity-specific id generators."""

    @staticmethod
    def page() -> str:
        return new_id("page")

    @staticmethod
    def section() -> str:
        return new_id("section")

    @staticmethod
    def question() -> str:
        return new_id("q")

    @staticmethod
    def answer() -> str:
        return new_id("a")

    @staticmethod
    def answer_set() -> str:
        return new_id("as")

    @staticmethod
    def branch() -> str:
        return new_id("branch")

    @staticmethod
    def rule_group() -> str:
        return new_id("g")

    @staticmethod
    def rule() -> str:
        return new_id("r")

    @staticmethod
    def answer_rule() -> str:
        return new_id("ar")

    @staticmethod
    def draft() -> str:
        return new_id("draft")

    @staticmethod
    def published() -> str:
        return new_id("published")
