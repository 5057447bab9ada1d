"""glosc -- MCP server project scaffolder and packager.

Two entry points share this package:

* ``glosc create`` renders a Python or TypeScript MCP server skeleton
  (see :mod:`glosc.scaffolder`).
* ``glosc package`` turns a scaffolded git repository into a timestamped
  zip archive under ``dist/`` (see :mod:`glosc.packager`).
"""

__version__ = "0.1.0"
