"""Intent-routing HTTP proxy.

Callers state what they want in plain language; the proxy decides which
registered agent (or agents) should act, learns how to call each one from
its published documentation and remembers that mapping for next time.
"""

__version__ = "0.1.0"
