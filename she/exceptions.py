"""
Exceções do esquema SHE.

Todas herdam de ValueError, de modo que código que já trata erros de
validação com ValueError continua funcionando.
"""


class SHEError(ValueError):
    """Erro base do pacote SHE."""


class PreconditionViolationError(SHEError):
    """
    Uso incorreto da API (erro do chamador).

    Exemplos: somar ciphertexts com escalas diferentes, chamar embed/twace
    com k != 0, ou divisão exata por g que falha durante a descriptografia.
    """


class ParameterMismatchError(SHEError):
    """Relação entre índices de anel ou módulos que não é satisfeita."""
