import dataclasses
import textwrap


def human_readable_size(size: int) -> str:
    if size < 2**10:
        return f"{size}"
    elif size < 2**20:
        return f"{size / float(2**10):.1f}K"
    elif size < 2**30:
        return f"{size / float(2**20):.1f}M"
    elif size < 2**40:
        return f"{size / float(2**30):.1f}G"
    elif size < 2**50:
        return f"{size / float(2**40):.1f}T"
    else:
        return f"{size / float(2**50):.1f}P"


def byte_info(size: int) -> str:
    if size < 2**10:
        return str(size)
    else:
        return f"{size} ({human_readable_size(size)})"


@dataclasses.dataclass(kw_only=True)
class ArrayInfo:
    """
    Visual summary for a lazy array.

    Note that this class and its properties are not part of lazydist's public API.
    """

    _type: str
    _data_type: str
    _shape: tuple[int, ...]
    _domain_a: str
    _domain_b: str
    _cache_strategy: str
    _cache_shape: tuple[int, ...] | None = None
    _cache_populated: str | None = None
    _cache_bytes: int | None = None

    def __repr__(self) -> str:
        template = textwrap.dedent("""\
        Type           : {_type}
        Data type      : {_data_type}
        Shape          : {_shape}
        Domain A       : {_domain_a}
        Domain B       : {_domain_b}
        Cache strategy : {_cache_strategy}""")

        kwargs = dataclasses.asdict(self)
        if self._cache_shape is not None:
            template += "\nCache shape    : {_cache_shape}"
        if self._cache_populated is not None:
            template += "\nCache filled   : {_cache_populated}"
        if self._cache_bytes is not None:
            template += "\nCache bytes    : {_cache_bytes}"
            kwargs["_cache_bytes"] = byte_info(self._cache_bytes)
        return template.format(**kwargs)
