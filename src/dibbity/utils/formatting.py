"""出力フォーマットユーティリティモジュール。

バイト数の表示、コスト見積もり、枠付きメッセージの表示を提供します。
"""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

UNIT = 1024

# 2進接頭辞 (EiBより大きい値もEiBで表示する)
PREFIXES = "KMGTPE"

# 桁ごとの表示色 (KiB, MiB, GiB, それ以上)
SIZE_COLORS = ["green", "yellow", "magenta"]
LARGE_SIZE_COLOR = "red"


def format_bytes(num_bytes: int, color: bool = True) -> str:
    """バイト数を人間が読みやすい形式に変換する。

    1024未満はそのまま ``"<n> B"`` を返す。それ以上は2進接頭辞
    (KiB, MiB, ...) で小数点以下2桁に丸め、大きさに応じてrichの色を付ける。

    Args:
        num_bytes: バイト数
        color: richのマークアップで色付けするかどうか

    Returns:
        フォーマット済みの文字列
    """
    if num_bytes < UNIT:
        return f"{num_bytes} B"

    div, exp = UNIT, 0
    n = num_bytes // UNIT
    while n >= UNIT and exp < len(PREFIXES) - 1:
        div *= UNIT
        exp += 1
        n //= UNIT

    text = f"{num_bytes / div:.2f} {PREFIXES[exp]}iB"
    if not color:
        return text

    style = SIZE_COLORS[exp] if exp < len(SIZE_COLORS) else LARGE_SIZE_COLOR
    return f"[{style}]{text}[/{style}]"


def estimate_cost(num_bytes: int, price_per_tib: float) -> float:
    """オンデマンド料金でのクエリコストを見積もる。"""
    return num_bytes / UNIT**4 * price_per_tib


def format_cost(cost: float) -> str:
    return f"${cost:.4f}"


def print_box(
    console: Console, title: str, content: str, style: str = "red"
) -> None:
    """タイトル付きの角丸枠でメッセージを表示する。"""
    console.print(
        Panel(
            Text(content),
            title=f"[bold]{title}[/bold]",
            title_align="left",
            box=box.ROUNDED,
            border_style=style,
            expand=False,
        )
    )
