"""
Operations Layer

Business logic that composes database methods into workflows. Operations
modules handle multi-step transactions, validation and business rules while
staying independent of Discord.

Architecture:
- Database layer: data access and the narrow persistence contracts
- Operations layer: matchmaking rounds, queue membership, registration
- Command layer: Discord integration and user interface

Modules:
- PlayerOperations: registration and bans
- QueueOperations: joining, leaving, autoqueue and queue lifecycle
- MatchmakingOperations: the per-queue matchmaking round
"""
