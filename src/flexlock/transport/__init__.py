"""I/O collaborators: registry index fetching and git access.

These are thin wrappers around the network and the ``git`` executable. The
core only sees their decoded results, and every failure surfaces as
``SourceUnreachable``.
"""
