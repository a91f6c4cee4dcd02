class HabitflowError(Exception):
    pass


class LockError(HabitflowError):
    pass


class StorageError(HabitflowError):
    pass


class ConflictError(StorageError):
    pass


class ValidationError(HabitflowError):
    pass
