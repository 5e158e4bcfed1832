class JournalSimError(Exception):
    pass


class SimulationConfigError(JournalSimError):
    def __init__(self, message: str, field: str = "") -> None:
        self.message = message
        self.field = field
        super().__init__(message)

    def __str__(self) -> str:
        field_info = f" ({self.field})" if self.field else ""
        return f"Simulation configuration error{field_info}: {self.message}"


class TradeSourceError(JournalSimError):
    def __init__(self, message: str, source: str = "") -> None:
        self.message = message
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        source_info = f" from {self.source}" if self.source else ""
        return f"Failed to load trades{source_info}: {self.message}"


class HistoryStorageError(JournalSimError):
    def __init__(self, message: str, operation: str, item_id: str = "") -> None:
        self.message = message
        self.operation = operation
        self.item_id = item_id
        super().__init__(message)

    def __str__(self) -> str:
        item_info = f" for item {self.item_id}" if self.item_id else ""
        return f"History {self.operation} failed{item_info}: {self.message}"


class SimulationStateError(JournalSimError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"Simulation state error: {self.message}"
