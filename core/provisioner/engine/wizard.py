"""
Step sequencing for the setup wizard.

The wizard has three steps: get the server running, install models, and
acknowledge the tutorial. Each step is pending until the previous one is
ready, active while it is the current step, and complete once done.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from provisioner.models.catalog import ModelSize
from provisioner.server.status import ServerStatus

SERVER_STEP = 0
MODELS_STEP = 1
FINAL_STEP = 2


class StepState(str, Enum):
    """Display state of a wizard step."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETE = "complete"


@dataclass
class WizardState:
    """Opaque wizard progress handed back to new sessions."""

    step_statuses: list[bool] = field(default_factory=lambda: [False, False, False])
    selected_model_size: Optional[ModelSize] = None

    def to_dict(self) -> dict:
        return {
            "stepStatuses": list(self.step_statuses),
            "selectedModelSize": (
                self.selected_model_size.value if self.selected_model_size else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WizardState":
        statuses = [bool(s) for s in data.get("stepStatuses", [])][:3]
        statuses += [False] * (3 - len(statuses))
        size = data.get("selectedModelSize")
        return cls(
            step_statuses=statuses,
            selected_model_size=ModelSize(size) if size else None,
        )


class ProvisioningStateMachine:
    """
    Drives WizardState from server status polls and explicit signals.

    The models step cannot leave ``pending`` until the server is ready, and
    the final step cannot leave ``pending`` until models are installed.

    "Ready" for the server means ``started`` or ``stopped``: an installed but
    stopped server already unlocks the models step, because ``pull_models``
    starts it and waits for it before pulling. The server need not have
    reached ``started`` for the models step to become active.
    """

    def __init__(self, state: Optional[WizardState] = None):
        self.state = state or WizardState()

    @property
    def server_ready(self) -> bool:
        return self.state.step_statuses[SERVER_STEP]

    @property
    def models_ready(self) -> bool:
        return self.state.step_statuses[MODELS_STEP]

    @property
    def tutorial_acknowledged(self) -> bool:
        return self.state.step_statuses[FINAL_STEP]

    @property
    def is_complete(self) -> bool:
        """Setup is usable once the server and models are ready."""
        return self.server_ready and self.models_ready

    def on_server_status(self, status: ServerStatus) -> None:
        self.state.step_statuses[SERVER_STEP] = status in (
            ServerStatus.STARTED,
            ServerStatus.STOPPED,
        )

    def on_models_installed(self, success: bool) -> None:
        self.state.step_statuses[MODELS_STEP] = success

    def on_tutorial_shown(self) -> None:
        self.state.step_statuses[FINAL_STEP] = True

    def select_model_size(self, size: ModelSize | str) -> None:
        self.state.selected_model_size = ModelSize(size)

    def steps(self) -> list[StepState]:
        server = StepState.COMPLETE if self.server_ready else StepState.ACTIVE

        if not self.server_ready:
            models = StepState.PENDING
        elif self.models_ready:
            models = StepState.COMPLETE
        else:
            models = StepState.ACTIVE

        if models != StepState.COMPLETE:
            final = StepState.PENDING
        elif self.tutorial_acknowledged:
            final = StepState.COMPLETE
        else:
            final = StepState.ACTIVE

        return [server, models, final]

    def to_dict(self) -> dict:
        data = self.state.to_dict()
        data["steps"] = [s.value for s in self.steps()]
        return data
