# src/services/realtime_relay/__init__.py
"""
Realtime ретранслятор.

Принимает координаты водителей и сообщения чата по WebSocket,
рассылает координаты всем соединениям, а чат только в комнату chat-<driverId>.
"""
