"""(MVP) .pest 문법 파일 로더 + 경로 해석"""

from __future__ import annotations
import os
from pathlib    import Path
from typing     import Optional


def resolve_grammar_path(name: str, root: Optional[str] = None) -> Path:
    """
    `grammar = "..."` 값을 실제 파일 경로로 해석한다.
    - 절대경로면 그대로
    - root 지정 시 root 기준
    - 아니면 pest 관례대로 $CARGO_MANIFEST_DIR/src 기준
    - 둘 다 없으면 현재 디렉터리 기준
    """
    path = Path(name)
    if path.is_absolute():
        return path
    if root:
        return Path(root) / path
    manifest_dir = os.environ.get("CARGO_MANIFEST_DIR")
    if manifest_dir:
        return Path(manifest_dir) / "src" / path
    return Path.cwd() / path


def load_grammar_text(path: str) -> str:
    """
    Load Grammar Text
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"error opening {p}")
    text = p.read_text(encoding="utf-8")
    return text.replace("\r\n", "\n").replace("\r", "\n")
