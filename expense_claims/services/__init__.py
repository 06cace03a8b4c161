"""
Services Layer for the Expense Claims engine.

Modules are imported directly (``expense_claims.services.claim_repository``
and so on); the schemas depend on ``services.money``, so this package
re-exports nothing.
"""
