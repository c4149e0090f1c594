"""gobuild - config based parallel builder for Go projects.

Builds one or more Go packages for a matrix of target platforms, running
exec/copy/replace actions before and after each build.
"""

__version__ = "0.1.0"
