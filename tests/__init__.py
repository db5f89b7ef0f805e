"""Firestore to BigQuery export test suite.

Test organization:
- unit/: one module per library module, run against in-memory fakes
- fakes.py: FakeFirestore, FakeWarehouse and RecordingCheckpointStore
- conftest.py: shared fixtures and the participants sample tree
"""
