from journal_sim.data.storage.history import HistoryRepository

__all__ = ["HistoryRepository"]
