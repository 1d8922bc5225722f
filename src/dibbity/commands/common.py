"""コマンド共通のヘルパー。"""

from typing import Any, Dict

import click

from dibbity.utils.config import Settings, load_settings


def get_settings(ctx: click.Context, **overrides: Any) -> Settings:
    """コンテキストから設定を取得し、コマンドラインオプションで上書きします。

    グループを経由せずにコマンドが呼ばれた場合は、その場で設定を読み込みます。

    Args:
        ctx: クリックコンテキスト
        **overrides: 設定キーと値（Noneの値は無視されます）

    Returns:
        設定
    """
    obj: Dict[str, Any] = ctx.ensure_object(dict)
    if "SETTINGS" not in obj:
        obj["SETTINGS"] = load_settings()
    settings = obj["SETTINGS"]
    settings.update(overrides)
    return settings
