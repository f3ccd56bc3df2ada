"""create-lore -- bootstrap a new Lore knowledge-persistent agent repo.

Clones the Lore template (or copies a local override), strips the template's
history and development assets, writes the instance configuration, and starts
a fresh git history.

Usage::

    create-lore myproject        # creates ./myproject/
    create-lore ./custom/path    # creates at a specific path under cwd
"""

__version__ = "0.1.0"
