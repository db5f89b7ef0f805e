"""Mirror Cloud Firestore collections into BigQuery as an append-only changelog."""

__version__ = "1.0.0"
