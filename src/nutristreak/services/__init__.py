"""Service layer for streak bookkeeping."""
