"""Engine module - model provisioning and setup sessions."""

from provisioner.engine.model_server import ModelServer
from provisioner.engine.session import ProvisioningSession
from provisioner.engine.wizard import ProvisioningStateMachine, StepState, WizardState

__all__ = [
    "ModelServer",
    "ProvisioningSession",
    "ProvisioningStateMachine",
    "StepState",
    "WizardState",
]
