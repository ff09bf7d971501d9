"""railsgen -- interactive generator for Rails GraphQL APIs and their frontends.

The wizard drives external tools (rails, bundle, elm, npm) through an
ordered step pipeline.  Frontend code generation needs the generated API
running, which ``railsgen.supervisor`` provides: it starts the server,
waits for its readiness line and later stops it by port.
"""

__version__ = "0.1.0"
