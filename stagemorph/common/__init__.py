"""
Shared plumbing: errors, structured logging, configuration, clock, auth context.

Nothing here knows about stages or balances.
"""
