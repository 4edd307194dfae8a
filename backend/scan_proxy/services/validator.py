"""
Modulo de validacion de los parametros de pagina.

Es la PRIMERA etapa del pipeline: si el capitulo o la pagina no son
validos, la peticion se rechaza con 400 sin tocar el cache ni el origen.

Reglas:
1. Ambos parametros deben ser enteros no negativos en forma canonica:
   "0" o digitos sin ceros a la izquierda ("7" si, "07" no, "-1" no,
   "abc" no). Como maximo 6 digitos.
2. El capitulo debe estar en [MIN_CHAPTER, MAX_CHAPTER] (el maximo es
   opcional).
3. La pagina empieza en 1.

Por que exigir forma canonica?
------------------------------
Porque "7" y "007" apuntarian a la misma pagina pero, sin normalizar,
serian dos claves de cache distintas. Rechazar las formas no canonicas
mantiene una sola clave por pagina.

Patron de diseno: Resultado como dataclass
------------------------------------------
Igual que en otros validadores del proyecto, retornamos un
ValidationResult (is_valid, key, error) en vez de lanzar excepciones;
el Resolver decide que hacer con el error.
"""

import re
from dataclasses import dataclass

from scan_proxy.config import settings
from scan_proxy.services.cache import CacheKey

# "0" o un digito 1-9 seguido de hasta 5 digitos mas. Se usa con
# fullmatch: con match, "$" aceptaria un "\n" final.
CANONICAL_INT = re.compile(r"0|[1-9][0-9]{0,5}")


@dataclass
class ValidationResult:
    """
    Atributos:
        is_valid (bool): True si ambos parametros pasaron las reglas.
        key (CacheKey | None): Clave ya armada, solo si is_valid es True.
        error (str): Descripcion del problema si is_valid es False.
    """
    is_valid: bool
    key: CacheKey | None = None
    error: str = ""


def validate_page_request(chapter: str, page: str) -> ValidationResult:
    """
    Valida el capitulo y la pagina tal como llegan en la URL (texto).

    Ejemplos:
        >>> validate_page_request("1050", "3")
        ValidationResult(is_valid=True, key=CacheKey(chapter=1050, page=3), error='')

        >>> validate_page_request("abc", "3").error
        "Chapter 'abc' is not a valid number"
    """
    if not CANONICAL_INT.fullmatch(chapter):
        return ValidationResult(is_valid=False, error=f"Chapter '{chapter}' is not a valid number")
    if not CANONICAL_INT.fullmatch(page):
        return ValidationResult(is_valid=False, error=f"Page '{page}' is not a valid number")

    chapter_number = int(chapter)
    page_number = int(page)

    if chapter_number < settings.MIN_CHAPTER:
        return ValidationResult(
            is_valid=False,
            error=f"Chapter must be at least {settings.MIN_CHAPTER}",
        )
    if settings.MAX_CHAPTER is not None and chapter_number > settings.MAX_CHAPTER:
        return ValidationResult(
            is_valid=False,
            error=f"Chapter must be at most {settings.MAX_CHAPTER}",
        )
    if page_number < 1:
        return ValidationResult(is_valid=False, error="Page must be at least 1")

    return ValidationResult(is_valid=True, key=CacheKey(chapter_number, page_number))
