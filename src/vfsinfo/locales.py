import os
from collections.abc import Mapping

LOCALE_CATEGORY_VARIABLES: tuple[str, ...] = ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG")

_CODESET: int = 1 << 0
_TERRITORY: int = 1 << 1
_MODIFIER: int = 1 << 2


def explode_locale(locale: str) -> tuple[str, str, str, str]:
    """
    Split `lang_TERRITORY.CODESET@MODIFIER` into its four parts.

    Missing parts are returned as empty strings, separators included in the
    non-language parts so they can be concatenated back together.
    """
    modifier: str = ""
    codeset: str = ""
    territory: str = ""

    rest: str = locale
    if "@" in rest:
        rest, tail = rest.split("@", 1)
        modifier = "@" + tail
    if "." in rest:
        rest, tail = rest.split(".", 1)
        codeset = "." + tail
    if "_" in rest:
        rest, tail = rest.split("_", 1)
        territory = "_" + tail

    return rest, territory, codeset, modifier


def locale_variants(locale: str) -> list[str]:
    """
    Return the variants of `locale`, most specific first.

    >>> locale_variants("de_DE.UTF-8@euro")[:3]
    ['de_DE.UTF-8@euro', 'de_DE@euro', 'de.UTF-8@euro']
    """
    language, territory, codeset, modifier = explode_locale(locale)

    mask: int = 0
    if territory:
        mask |= _TERRITORY
    if codeset:
        mask |= _CODESET
    if modifier:
        mask |= _MODIFIER

    variants: list[str] = []
    for bits in range(mask, -1, -1):
        if bits & ~mask:
            continue
        variant: str = (
            language
            + (territory if bits & _TERRITORY else "")
            + (codeset if bits & _CODESET else "")
            + (modifier if bits & _MODIFIER else "")
        )
        variants.append(variant)

    return variants


def get_language_names(environ: Mapping[str, str] | None = None) -> list[str]:
    """
    Return the preferred locale names of the process, most preferred first.

    The first non-empty variable out of LANGUAGE, LC_ALL, LC_MESSAGES and
    LANG decides; LANGUAGE may hold a colon separated list. Every entry is
    expanded into its variants and "C" always comes last.
    """
    env: Mapping[str, str] = os.environ if environ is None else environ

    value: str = ""
    for variable in LOCALE_CATEGORY_VARIABLES:
        value = env.get(variable, "")
        if value:
            break

    names: list[str] = []
    for locale in value.split(":"):
        if not locale or locale in ("C", "POSIX"):
            continue
        for variant in locale_variants(locale):
            if variant not in names:
                names.append(variant)

    names.append("C")

    return names
