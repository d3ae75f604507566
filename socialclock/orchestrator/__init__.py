from socialclock.models.collaborators import AlarmKind, Identity
from .orchestrator import Orchestrator

__all__ = ["AlarmKind", "Identity", "Orchestrator"]
