# Shop ledger test suite
#
# In-process tests against an in-memory SQLite database:
# - service tests call shopledger.services directly with a CallerContext
# - test_api.py drives the Flask blueprints through the test client
#
# Run with: pytest
