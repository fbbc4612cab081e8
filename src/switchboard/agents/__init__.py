"""Agent registry, records, and invocation helpers."""

from switchboard.agents.invocation import invoke_agent, resolve_invocation, select_model
from switchboard.agents.models import (
    AgentDefinition,
    AgentListing,
    AgentOrigin,
    AgentRecord,
    AgentSummary,
    AliasConflict,
    InactiveReason,
    ModelRecord,
)
from switchboard.agents.registry import PROVIDER_PRIORITY, AgentRegistry

__all__ = [
    "PROVIDER_PRIORITY",
    "AgentDefinition",
    "AgentListing",
    "AgentOrigin",
    "AgentRecord",
    "AgentRegistry",
    "AgentSummary",
    "AliasConflict",
    "InactiveReason",
    "ModelRecord",
    "invoke_agent",
    "resolve_invocation",
    "select_model",
]
