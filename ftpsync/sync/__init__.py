"""Synchronization module for ftpsync.

This module turns two trees into work and runs it:
- Models: Entry, SyncItem and SyncPlan
- MaskingContext: Include/exclude file masks
- SyncPlanner: Newer-than comparison and plan ordering
- TransferScheduler: Bounded-concurrency execution with progress
- Operations: Put, get and delete runs
"""
