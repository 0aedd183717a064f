"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for persistence.
This allows us to:
1. Keep the ledger decoupled from where the blob lives
2. Use in-memory storage for testing
3. Swap the local JSON file for another backend later

The interface is intentionally tiny: the whole FinancialData aggregate
is loaded and saved as one unit. There are no partial writes.
"""

from abc import ABC, abstractmethod

from wealthwise.models.ledger import FinancialData


class LedgerStorageInterface(ABC):
    """
    Abstract interface for FinancialData persistence.
    
    Any storage implementation must implement these methods.
    """
    
    @abstractmethod
    def load(self) -> FinancialData:
        """
        Load the persisted aggregate.
        
        Returns:
            The stored data, or an empty FinancialData when nothing is
            stored yet or the stored blob cannot be read
        
        Never raises for absent or malformed data.
        """
        pass
    
    @abstractmethod
    def save(self, data: FinancialData) -> None:
        """
        Overwrite the persisted aggregate with data.
        
        Args:
            data: The full aggregate to store
        
        Raises:
            StorageError: If the write fails (the previous blob stays valid)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ImportFormatError(StorageError):
    """A user-supplied backup is malformed or has the wrong shape."""
    pass
