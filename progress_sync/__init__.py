"""
Telegram Mini App progress sync backend.

Verifies Telegram WebApp initData and relays user state and progress events
to a hosted PostgREST store.
"""
