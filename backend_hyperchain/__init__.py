"""
Backend Hyperchain Insights — real-time risk scoring for ledger transactions.

Ingests transactions from a live block feed or a synthetic generator, scores
each one for risk, raises alerts on high-risk activity, keeps running
analytics in memory, and fans updates out to live subscribers. Modular
architecture with clear separation between ingestion, analysis engine,
alerts, store, broadcast hub, query service and API server.
"""

__version__ = "0.1.0"
