"""Infrastructure errors shared by the persistence layer and its callers."""


class StoreUnavailableError(Exception):
    """The backing store could not complete an operation.

    Distinct from every validation outcome: callers may retry the request.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"store unavailable during {operation}")
