"""nbi — name availability checker.

Checks whether a proposed name is free across package indexes (npm,
crates.io, PyPI, Homebrew, Flathub, Debian), GitHub and the ``.dev`` DNS
namespace, and can reserve it through an interactive terminal session.

Quickstart::

    import asyncio
    from nbi.registry import RegistrySelection, check_all

    results = asyncio.run(check_all("left-pad", RegistrySelection()))
    for r in results:
        print(r.kind.label, r.available)
"""

__version__ = "0.1.0"
