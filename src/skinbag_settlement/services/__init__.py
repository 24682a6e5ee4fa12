"""Settlement engine services.

Each module owns one component of the engine. Services take an open
``Session``, flush their writes and raise :class:`SettlementError` subclasses;
committing is left to the caller (see :func:`skinbag_settlement.db.atomic`).
"""
