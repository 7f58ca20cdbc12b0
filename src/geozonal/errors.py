"""
Exceções do geozonal.

Todas derivam de :class:`GeozonalError`; cada uma também herda da exceção
embutida mais próxima, para quem já trata ``ValueError``/``KeyError``.
"""


class GeozonalError(Exception):
    """Base de todos os erros do pacote."""


class InvalidGeometryError(GeozonalError, ValueError):
    """Anel ou ponto malformado (não fechado, degenerado, não finito)."""


class InvalidAttributeError(GeozonalError, TypeError):
    """Valor de atributo fora de ``str | int | float | bool | None``."""


class UnknownCRSError(GeozonalError, KeyError):
    """CRS não registrado no :class:`~geozonal.crs.CRSRegistry`."""

    def __str__(self):
        # KeyError coloca a mensagem entre aspas
        return str(self.args[0]) if self.args else ""


class CRSMismatchError(GeozonalError, ValueError):
    """Geometrias em CRSs diferentes comparadas sem reprojeção."""


class TransformError(GeozonalError):
    """Falha do PROJ ou coordenada não finita após a reprojeção."""


class DuplicateIdError(GeozonalError, ValueError):
    """Mais de um polígono com o mesmo id."""
