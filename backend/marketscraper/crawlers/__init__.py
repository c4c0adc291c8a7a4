"""Browser automation bindings."""

from .browser import BrowserSession, launch_session, parse_proxy

__all__ = ['BrowserSession', 'launch_session', 'parse_proxy']
