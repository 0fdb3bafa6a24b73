from provisioner.engine.wizard import (
    FINAL_STEP,
    MODELS_STEP,
    ProvisioningStateMachine,
    StepState,
    WizardState,
)
from provisioner.models.catalog import ModelSize
from provisioner.server.status import ServerStatus


def test_initial_steps():
    machine = ProvisioningStateMachine()
    assert machine.steps() == [StepState.ACTIVE, StepState.PENDING, StepState.PENDING]


def test_server_ready_unlocks_models_step():
    machine = ProvisioningStateMachine()
    machine.on_server_status(ServerStatus.STARTED)
    assert machine.steps() == [StepState.COMPLETE, StepState.ACTIVE, StepState.PENDING]

    machine.on_server_status(ServerStatus.STOPPED)
    assert machine.server_ready is True
    assert machine.steps()[MODELS_STEP] == StepState.ACTIVE

    machine.on_server_status(ServerStatus.INSTALLING)
    assert machine.server_ready is False


def test_models_step_needs_server():
    machine = ProvisioningStateMachine()
    machine.on_models_installed(True)
    # Recorded, but the step stays pending while the server is down
    assert machine.steps()[MODELS_STEP] == StepState.PENDING
    assert machine.steps()[FINAL_STEP] == StepState.PENDING


def test_final_step_needs_models():
    machine = ProvisioningStateMachine()
    machine.on_server_status(ServerStatus.STARTED)
    machine.on_tutorial_shown()
    assert machine.steps()[FINAL_STEP] == StepState.PENDING

    machine.on_models_installed(True)
    assert machine.steps() == [StepState.COMPLETE] * 3
    assert machine.is_complete


def test_failed_pull_keeps_models_step_active():
    machine = ProvisioningStateMachine()
    machine.on_server_status(ServerStatus.STARTED)
    machine.on_models_installed(False)
    assert machine.steps()[MODELS_STEP] == StepState.ACTIVE
    assert machine.is_complete is False


def test_state_round_trips_through_dict():
    state = WizardState(step_statuses=[True, True, False], selected_model_size=ModelSize.SMALL)
    data = state.to_dict()
    assert data == {"stepStatuses": [True, True, False], "selectedModelSize": "small"}
    assert WizardState.from_dict(data) == state


def test_from_dict_pads_missing_steps():
    state = WizardState.from_dict({"stepStatuses": [True]})
    assert state.step_statuses == [True, False, False]
    assert state.selected_model_size is None
