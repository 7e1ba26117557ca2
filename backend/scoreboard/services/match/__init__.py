"""Match domain services: clock, state model, transitions, cards, sync.

Everything here except ``store`` is free of Flask and Socket.IO, so the
same code runs inside HTTP routes, socket handlers and remote viewers.
"""
