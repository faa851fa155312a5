"""Realtime club chat and club trek events over Socket.IO."""
