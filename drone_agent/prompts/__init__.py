"""系统提示词加载。

提示词以 markdown 文件存放在 ``prompts/<locale>/`` 下。
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_system_prompt(name: str, locale: str = "en") -> str:
    """加载 ``locale`` 下的 ``<name>.md``，例如 "decision_system"。"""

    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").strip()
