"""BigQueryドライランモジュール。

``bq`` CLI または BigQuery API でクエリのドライランを行い、
スキャンされるバイト数を取得します。
"""

import abc
import json
import logging
import subprocess
from typing import Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import bigquery

from dibbity.estimator.models import Model
from dibbity.utils.config import Settings
from dibbity.utils.errors import ConfigError, DryRunError

logger = logging.getLogger(__name__)

BQ_DRY_RUN_ARGS = [
    "query",
    "--nouse_legacy_sql",
    "--dry_run",
    "--nouse_cache",
    "--format=json",
]


def parse_dry_run_response(text: str) -> int:
    """``bq query --dry_run --format=json`` の出力からtotalBytesProcessedを取り出します。

    Args:
        text: bqの標準出力

    Returns:
        スキャンされるバイト数（フィールドが無い場合は0）

    Raises:
        DryRunError: JSONとして不正、またはバイト数が整数でない場合
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DryRunError(f"ドライランのレスポンスを解析できません: {e}")

    if not isinstance(data, dict):
        raise DryRunError("ドライランのレスポンスがJSONオブジェクトではありません")

    query_stats = (data.get("statistics") or {}).get("query") or {}
    total = query_stats.get("totalBytesProcessed")
    if total in (None, ""):
        return 0

    try:
        return int(total)
    except (TypeError, ValueError):
        raise DryRunError(f"totalBytesProcessedを解析できません: {total!r}")


class DryRunnerBase(abc.ABC):
    """ドライランナーの基底クラス。"""

    @abc.abstractmethod
    def dry_run(self, model: Model) -> Model:
        """モデルのSQLをドライランし、結果をモデルに格納して返します。

        bqやBigQueryがクエリを拒否した場合は ``model.ok`` をFalseにし、
        エラーメッセージを ``model.error`` に格納します。
        """
        pass


class BqCliDryRunner(DryRunnerBase):
    """``bq`` CLIでドライランを行うクラス。"""

    def __init__(self, bq_command: str = "bq"):
        self.bq_command = bq_command

    def command(self):
        return [self.bq_command] + BQ_DRY_RUN_ARGS

    def dry_run(self, model: Model) -> Model:
        """モデルのSQLをドライランします。

        SQLは標準入力から渡すため、``--`` コメントで始まるクエリも
        オプションとして解釈されません。bqが0以外で終了した場合は
        例外を送出せずに ``model.ok`` をFalseにし、出力を ``model.error`` に格納します。

        Args:
            model: ドライラン対象のモデル

        Returns:
            結果を格納したモデル

        Raises:
            DryRunError: bqを起動できない、または成功時のレスポンスが不正な場合
        """
        cmd = self.command()
        logger.debug(f"実行します: {' '.join(cmd)} (クエリは標準入力から渡します)")

        try:
            result = subprocess.run(
                cmd,
                input=model.sql,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise DryRunError(f"bqコマンドを実行できません: {e}")

        if result.returncode != 0:
            model.ok = False
            model.error = (result.stdout.strip() or result.stderr.strip()) or (
                f"bqが終了コード {result.returncode} で終了しました"
            )
            logger.debug(f"ドライランに失敗しました: {model.name} - {model.error}")
            return model

        model.bytes_processed = parse_dry_run_response(result.stdout)
        model.ok = True
        logger.debug(f"ドライラン完了: {model.name} - {model.bytes_processed} bytes")
        return model


class ApiDryRunner(DryRunnerBase):
    """BigQuery APIでドライランを行うクラス。"""

    def __init__(self, project_id: Optional[str] = None, location: Optional[str] = None):
        """BigQueryクライアントを初期化します。

        Args:
            project_id: 課金先のプロジェクトID（省略時は認証情報のデフォルト）
            location: BigQueryのロケーション
        """
        self.project_id = project_id
        self.location = location
        self.client = bigquery.Client(project=project_id, location=location)
        logger.debug(
            f"BigQueryクライアントを初期化しました: プロジェクト={project_id}, ロケーション={location}"
        )

    def dry_run(self, model: Model) -> Model:
        """モデルのSQLをBigQuery APIでドライランします。

        APIエラーの場合は ``model.ok`` をFalseにし、エラーメッセージを格納します。
        """
        job_config = bigquery.QueryJobConfig(
            dry_run=True, use_query_cache=False, use_legacy_sql=False
        )

        try:
            job = self.client.query(model.sql, job_config=job_config)
        except google_exceptions.GoogleAPIError as e:
            model.ok = False
            model.error = str(e)
            logger.debug(f"ドライランに失敗しました: {model.name} - {e}")
            return model

        model.bytes_processed = job.total_bytes_processed or 0
        model.ok = True
        logger.debug(f"ドライラン完了: {model.name} - {model.bytes_processed} bytes")
        return model


def create_dry_runner(settings: Settings) -> DryRunnerBase:
    """設定のbackendに応じたドライランナーを作成します。"""
    if settings.backend == "bq":
        return BqCliDryRunner()
    if settings.backend == "api":
        return ApiDryRunner(settings.project_id, location=settings.location)
    raise ConfigError(f"不明なbackendです: {settings.backend}")
