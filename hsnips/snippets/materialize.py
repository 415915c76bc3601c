from typing import Iterator

from std2.types import never

from .types import Block, Rendered


def materialize(rendered: Rendered) -> str:
    segments, results = rendered

    def cont() -> Iterator[str]:
        for segment in segments:
            if isinstance(segment, str):
                yield segment
            elif isinstance(segment, Block):
                yield results[segment.idx]
            else:
                never(segment)

    return "".join(cont())
