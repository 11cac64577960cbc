"""Locate, install and launch the todo-highlight language server.

Hosts build a resolver with
:func:`todo_highlight.services.binary.build_binary_resolver` and call
:meth:`~todo_highlight.services.binary.BinaryResolver.language_server_command`
whenever the language server needs to start.
"""
