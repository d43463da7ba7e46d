from .ledger_analytics import LedgerAnalyticsService, SalesAnalytics, UserAnalytics

__all__ = ["LedgerAnalyticsService", "SalesAnalytics", "UserAnalytics"]
