class LoopworksError(Exception):
    pass


class ConfigurationError(LoopworksError):
    pass


class MonitorAlreadyRunningError(LoopworksError):
    pass


class PoolInitializationError(LoopworksError):
    pass


class PoolStateError(LoopworksError):
    pass


class UnitTerminatedError(LoopworksError):
    pass


class UnknownRequestError(LoopworksError):
    pass


class TaskExecutionError(LoopworksError):
    def __init__(self, task_id: int, message: str) -> None:
        super().__init__(f"Err. - Task - {task_id} - failed. Encountered exception - {message}")
        self.task_id = task_id
        self.reason = message

    def __reduce__(self):
        return (type(self), (self.task_id, self.reason))
