"""Services container shared by the CLI, the assistant and the tests."""

from config import Config
from db.manager import DatabaseManager


class Services:
    """Holds one instance of every service, all on the same database.

    Budget status reads expense totals and the vector store scans stored
    expense embeddings, so both are built on top of the expense service.

    Args:
        config: Application configuration object.
        db_manager: Database manager to use instead of one built from config.
    """

    def __init__(self, config: Config, db_manager=None):
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)

        # Lazy import to avoid circular dependencies
        from services.budgets import BudgetService
        from services.categories import CategoryService
        from services.expenses import ExpenseService
        from services.messages import MessageService
        from services.vector_store import LinearScanVectorStore

        self.expenses = ExpenseService(self.db_manager)
        self.categories = CategoryService(self.db_manager)
        self.messages = MessageService(self.db_manager)
        self.budgets = BudgetService(self.db_manager, self.expenses)
        self.vector_store = LinearScanVectorStore(self.expenses)
