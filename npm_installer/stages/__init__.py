"""
Installation stages.

Every module in this package registers one stage with the StageRegistry
when imported. The orchestrator imports them all before resolving the
stage order.
"""
