"""CLI tools for the patchwork service.

Provides standalone command-line utilities:

- ``python -m patchwork.cli.generate`` -- render a patchwork JPEG to a
  file, going through the same cache as the web server.
- ``python -m patchwork.cli.cache`` -- print cache statistics or run the
  eviction pass by hand.

Both use argparse and defer importing ``patchwork.main`` until the
arguments have been validated, so ``--help`` and usage errors stay fast.
"""
