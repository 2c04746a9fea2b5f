from sync_core.state.session_bridge import SESSION_DEFAULTS, SessionBridge

__all__ = ["SESSION_DEFAULTS", "SessionBridge"]
