"""Runtime type checking shared by both packages.

Numeric hints follow the PEP 484 tower, so an ``int`` is accepted
wherever a ``float`` is declared (``LocalPosition(0, 50, 0)``).
"""

from beartype import BeartypeConf, beartype

typechecked = beartype(conf=BeartypeConf(is_pep484_tower=True))

__all__ = ["typechecked"]
