"""
Input loading for the MEEET tokenomics model.

Turns the user simulation export (``results.csv``) into ordered DailyRecord
values and reads parameter sets from YAML files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd
import yaml

from meeet_sim import DailyRecord, InvalidInput, InvalidParameters, SimulationParameters

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PATH = Path(__file__).parent / "results.csv"

# Column headers written by the MEEET user simulation
COLUMN_ALIASES = {
    'Шаг': 'day',
    'NFT lvl1': 'silver_nfts',
    'NFT lvl2': 'gold_nfts',
    'NFT lvl3': 'platinum_nfts',
    'Активных NFT lvl1': 'active_silver_nfts',
    'Активных NFT lvl2': 'active_gold_nfts',
    'Активных NFT lvl3': 'active_platinum_nfts',
    'Встречи': 'meetings',
    'Новые NFT': 'new_nfts',
    'Стоимость новых NFT': 'new_nfts_value',
    'Цена токена': 'token_price',
    'REWARD_POOL токены': 'reward_pool_tokens',
}


def check_required_columns(df: pd.DataFrame, required: List[str]) -> List[str]:
    """
    Check if DataFrame has required columns.

    Args:
        df: DataFrame to check
        required: List of required column names

    Returns:
        List of missing column names
    """
    return [col for col in required if col not in df.columns]


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename simulation export headers to DailyRecord field names"""
    renamed = df.rename(columns=lambda c: COLUMN_ALIASES.get(str(c).strip(), str(c).strip()))
    if renamed.columns.duplicated().any():
        dupes = sorted(set(renamed.columns[renamed.columns.duplicated()]))
        raise InvalidInput(f"Columns map to the same field more than once: {', '.join(dupes)}")
    return renamed


def records_from_frame(df: pd.DataFrame) -> Tuple[DailyRecord, ...]:
    """
    Convert a parsed simulation export into ordered daily records

    Args:
        df: DataFrame with either the simulation's original headers or
            DailyRecord field names

    Returns:
        Tuple of DailyRecord in row order

    Raises:
        InvalidInput: if the frame is empty or lacks a required column
    """
    if df is None or df.empty:
        raise InvalidInput("No daily records found in the input data")

    df = normalize_columns(df)
    missing = check_required_columns(df, list(DailyRecord.REQUIRED_FIELDS))
    if missing:
        raise InvalidInput(f"Missing required columns: {', '.join(missing)}")

    columns = [c for c in DailyRecord.REQUIRED_FIELDS + DailyRecord.OPTIONAL_FIELDS if c in df.columns]
    rows = df[columns].to_dict(orient='records')

    records = []
    for position, row in enumerate(rows):
        try:
            records.append(DailyRecord.from_mapping(row))
        except InvalidInput as e:
            raise InvalidInput(f"Row {position + 1}: {e}") from e

    logger.info("Loaded %d daily records", len(records))
    return tuple(records)


def load_records(source: Union[str, Path, Any] = DEFAULT_RESULTS_PATH) -> Tuple[DailyRecord, ...]:
    """
    Read a simulation export CSV into daily records

    Args:
        source: Path or file-like object (e.g. a Streamlit upload)

    Returns:
        Tuple of DailyRecord

    Raises:
        InvalidInput: if the file is empty, malformed or not UTF-8 text
    """
    try:
        df = pd.read_csv(source, skip_blank_lines=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        logger.warning("Rejecting unreadable simulation CSV: %s", e)
        raise InvalidInput(f"Could not parse simulation CSV: {e}") from e
    return records_from_frame(df)


def load_parameters(config_path: Optional[Path] = None) -> SimulationParameters:
    """
    Load simulation parameters from a YAML file

    Args:
        config_path: Path to a YAML mapping of parameter names to values.
            A missing file yields the default parameters.

    Returns:
        Validated SimulationParameters
    """
    if config_path is None:
        config_path = Path(__file__).parent / "config" / "parameters.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        logger.info("No parameter file at %s, using defaults", config_path)
        return SimulationParameters()

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise InvalidParameters(f"{config_path} must contain a mapping of parameters")

    return SimulationParameters.from_dict(data)


def parameters_to_yaml(params: SimulationParameters) -> str:
    """Serialize the editable parameters of a set as YAML"""
    data: Dict[str, float] = params.to_dict()
    data.pop('company_profit_percentage', None)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
