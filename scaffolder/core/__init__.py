"""Runner core: orchestration, step state machine, checkpoints, policy and tracking."""
