class SchedulerInputError(ValueError):
    """Request refers to something that is not part of the schedule or roster."""

class UnknownClassError(SchedulerInputError):
    def __init__(self, class_id):
        super().__init__(f"Class {class_id} is not part of this schedule")
        self.class_id = class_id

class EditSessionStateError(RuntimeError):
    """Operation is not allowed in the session's current state."""
