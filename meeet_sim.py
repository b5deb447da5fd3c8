"""
Core MEEET Tokenomics Model

This module contains the aggregation and modeling engine behind the MEEET
tokenomics dashboard. It takes the daily output of the MEEET user simulation
(NFT issuance per tier, active users, meetings, token price, reward pool) and
derives quarterly financial summaries, a modeled token price series and
horizon-wide summary metrics for a given parameter set.

The whole pipeline is a pure function of (records, parameters) and is re-run
in full every time a parameter changes.
"""

import logging
import math
from dataclasses import dataclass, field, fields, asdict
from typing import List, Dict, Any, Tuple, Optional, Mapping, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DAYS_IN_QUARTER = 91  # ~3 months
TIERS = ("silver", "gold", "platinum")


class SimulationError(ValueError):
    """Base class for errors raised by the tokenomics model"""


class InvalidInput(SimulationError):
    """The daily record sequence cannot be processed"""


class InvalidParameters(SimulationError):
    """The parameter set is inconsistent or out of range"""


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class SimulationParameters:
    """Adjustable parameters for the quarterly tokenomics model"""

    # NFT prices (USDT)
    silver_price: float = 100
    gold_price: float = 1000
    platinum_price: float = 10000

    # Revenue distribution (% of NFT revenue)
    buyback_percentage: float = 20
    user_rewards_percentage: float = 30
    # Derived in __post_init__ as whatever is left after buyback and rewards
    company_profit_percentage: float = field(init=False, default=0.0)

    # Costs
    operational_costs_base: float = 50_000  # USDT per quarter
    operational_costs_per_user: float = 1  # USDT per active user per day
    marketing_percentage: float = 15  # % of NFT revenue

    # Tokenomics
    total_token_supply: float = 1_000_000_000  # 1B tokens
    initial_reward_pool: float = 700_000_000  # 70% of supply
    initial_liquidity: float = 50_000  # USDT

    # Price impact factors
    buyback_price_impact: float = 15  # % price move at a 1:1 buyback/liquidity ratio
    reward_distribution_impact: float = 8  # % (negative) price pressure from distribution
    market_sentiment: float = 0  # -10 (bearish) .. +10 (bullish)

    # User LTV (USDT) and retention
    silver_user_ltv: float = 120
    gold_user_ltv: float = 1200
    platinum_user_ltv: float = 12000
    retention_rate: float = 70

    def __post_init__(self):
        """Derive the company share of revenue and validate the whole set"""
        self._validate_numbers()
        object.__setattr__(
            self,
            'company_profit_percentage',
            100 - self.buyback_percentage - self.user_rewards_percentage
        )
        self.validate()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationParameters":
        """
        Build parameters from a loosely-typed mapping (settings form, YAML file)

        Args:
            data: Mapping of parameter name to value

        Returns:
            Validated SimulationParameters

        Raises:
            InvalidParameters: if the mapping holds unknown or derived keys
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidParameters(f"Parameters must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls) if f.init}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidParameters(f"Unknown parameters: {', '.join(unknown)}")

        try:
            return cls(**data)
        except TypeError as e:
            raise InvalidParameters(str(e)) from e

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def _validate_numbers(self):
        for f in fields(self):
            if not f.init:
                continue
            value = getattr(self, f.name)
            if not _is_number(value):
                raise InvalidParameters(f"{f.name} must be a finite number, got {value!r}")

    def validate(self):
        """
        Check the parameter set for consistency

        Runs on construction and again at the start of every model run.

        Raises:
            InvalidParameters: on the first violated constraint
        """
        self._validate_numbers()

        percentages = {
            'buyback_percentage': self.buyback_percentage,
            'user_rewards_percentage': self.user_rewards_percentage,
            'marketing_percentage': self.marketing_percentage,
            'buyback_price_impact': self.buyback_price_impact,
            'reward_distribution_impact': self.reward_distribution_impact,
            'retention_rate': self.retention_rate,
        }
        for name, value in percentages.items():
            if not 0 <= value <= 100:
                raise InvalidParameters(f"{name} must be between 0 and 100, got {value}")

        if self.buyback_percentage + self.user_rewards_percentage > 100:
            raise InvalidParameters(
                f"Buyback ({self.buyback_percentage}%) and user rewards "
                f"({self.user_rewards_percentage}%) exceed 100% of revenue"
            )

        expected_profit = 100 - self.buyback_percentage - self.user_rewards_percentage
        if not math.isclose(self.company_profit_percentage, expected_profit, abs_tol=1e-9):
            raise InvalidParameters(
                f"company_profit_percentage ({self.company_profit_percentage}) must equal "
                f"100 - buyback - user rewards ({expected_profit})"
            )
        if self.company_profit_percentage < 0:
            raise InvalidParameters("company_profit_percentage must not be negative")

        if not -10 <= self.market_sentiment <= 10:
            raise InvalidParameters(f"market_sentiment must be between -10 and 10, got {self.market_sentiment}")

        non_negative = (
            'silver_price', 'gold_price', 'platinum_price',
            'silver_user_ltv', 'gold_user_ltv', 'platinum_user_ltv',
            'operational_costs_base', 'operational_costs_per_user',
            'initial_liquidity',
        )
        for name in non_negative:
            if getattr(self, name) < 0:
                raise InvalidParameters(f"{name} must not be negative, got {getattr(self, name)}")

        if self.total_token_supply <= 0:
            raise InvalidParameters(f"total_token_supply must be positive, got {self.total_token_supply}")

        if not 0 <= self.initial_reward_pool <= self.total_token_supply:
            raise InvalidParameters(
                f"initial_reward_pool ({self.initial_reward_pool}) must be between 0 "
                f"and total_token_supply ({self.total_token_supply})"
            )

    def tier_prices(self) -> Tuple[float, float, float]:
        return (self.silver_price, self.gold_price, self.platinum_price)

    def tier_ltv_bases(self) -> Tuple[float, float, float]:
        return (self.silver_user_ltv, self.gold_user_ltv, self.platinum_user_ltv)


@dataclass(frozen=True)
class DailyRecord:
    """One day of output from the MEEET user simulation"""

    day: int
    silver_nfts: float
    gold_nfts: float
    platinum_nfts: float
    active_silver_nfts: float
    active_gold_nfts: float
    active_platinum_nfts: float
    token_price: float
    reward_pool_tokens: float
    meetings: float = 0
    new_nfts: float = 0
    new_nfts_value: float = 0

    REQUIRED_FIELDS = (
        'day',
        'silver_nfts', 'gold_nfts', 'platinum_nfts',
        'active_silver_nfts', 'active_gold_nfts', 'active_platinum_nfts',
        'token_price', 'reward_pool_tokens',
    )
    OPTIONAL_FIELDS = ('meetings', 'new_nfts', 'new_nfts_value')

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "DailyRecord":
        """
        Build a record from a parsed row

        Missing activity columns (meetings, new NFTs) count as zero; every
        other field is required.

        Raises:
            InvalidInput: if a required field is missing or not numeric
        """
        values = {}
        for name in cls.REQUIRED_FIELDS:
            value = row.get(name)
            if value is None or (isinstance(value, float) and math.isnan(value)):
                raise InvalidInput(f"Record is missing required field '{name}'")
            values[name] = value
        for name in cls.OPTIONAL_FIELDS:
            value = row.get(name)
            if value is None or (isinstance(value, float) and math.isnan(value)):
                value = 0
            values[name] = value

        try:
            converted = {name: float(value) for name, value in values.items()}
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Record has a non-numeric field: {e}") from e

        day = converted.pop('day')
        if not math.isfinite(day) or day != int(day):
            raise InvalidInput(f"Day index must be an integer, got {values['day']!r}")
        return cls(day=int(day), **converted)

    def tier_counts(self) -> Tuple[float, float, float]:
        return (self.silver_nfts, self.gold_nfts, self.platinum_nfts)

    def active_counts(self) -> Tuple[float, float, float]:
        return (self.active_silver_nfts, self.active_gold_nfts, self.active_platinum_nfts)

    @property
    def total_nfts(self) -> float:
        return sum(self.tier_counts())

    @property
    def active_total_nfts(self) -> float:
        return sum(self.active_counts())


@dataclass(frozen=True)
class QuarterSummary:
    """Financial and tokenomics figures for one quarter window"""

    quarter: int
    day_start: int
    day_end: int

    # NFT holdings at the end of the window
    silver_nfts: float
    gold_nfts: float
    platinum_nfts: float
    active_silver_nfts: float
    active_gold_nfts: float
    active_platinum_nfts: float
    total_nfts: float
    active_total_nfts: float

    # Activity over the window
    meetings: float
    meetings_per_day: float
    reward_pool: float
    new_nfts: float
    new_nfts_value: float

    # Net issuance and revenue per tier
    new_silver: float
    new_gold: float
    new_platinum: float
    silver_revenue: float
    gold_revenue: float
    platinum_revenue: float

    # Revenue distribution
    nft_revenue: float
    buyback_amount: float
    user_rewards_amount: float
    gross_profit_amount: float

    # Costs and profit
    marketing_costs: float
    operational_costs: float
    net_profit: float
    net_profit_margin: float

    # Token metrics
    actual_token_price: float
    modeled_token_price: float
    tokens_bought_back: float
    tokens_distributed: float
    circulating_supply: float
    market_cap: float
    estimated_liquidity: float

    # Raw price-effect coefficients
    buyback_price_effect: float
    distribution_price_effect: float
    sentiment_effect: float

    # LTV
    total_user_ltv: float
    avg_lifetime_value: float

    @property
    def total_price_effect(self) -> float:
        return self.buyback_price_effect + self.distribution_price_effect + self.sentiment_effect


@dataclass(frozen=True)
class DailyModeledPrice:
    """Observed vs modeled token price for a single day"""
    day: int
    actual_token_price: float
    modeled_token_price: float
    reward_pool: float
    circulating_supply: float


@dataclass(frozen=True)
class SummaryMetrics:
    """Horizon-wide totals and end-of-period figures"""

    # Finance
    total_nft_revenue: float
    buyback_amount: float
    user_rewards_amount: float
    gross_profit_amount: float
    marketing_costs: float
    operational_costs: float
    net_profit: float
    net_profit_margin: float

    # Token
    total_tokens_bought_back: float
    first_token_price: float
    last_token_price: float
    avg_token_price: float
    token_price_change: float
    modeled_token_price: float
    final_circulating_supply: float
    estimated_market_cap: float

    # Users
    initial_users: float
    final_users: float
    user_growth: float
    total_meetings: float
    avg_meetings_per_day: float
    avg_ltv: float
    total_user_ltv: float


@dataclass(frozen=True)
class SimulationResult:
    """Output bundle of a full model run"""
    quarterly: Tuple[QuarterSummary, ...]
    daily: Tuple[DailyModeledPrice, ...]
    summary: SummaryMetrics

    def quarterly_frame(self) -> pd.DataFrame:
        """Quarter summaries as a DataFrame, one row per quarter"""
        return pd.DataFrame([asdict(q) for q in self.quarterly])

    def daily_frame(self, every: int = 1) -> pd.DataFrame:
        """
        Daily modeled prices as a DataFrame

        Args:
            every: Keep every n-th day (7 gives the weekly view used by price charts)

        Returns:
            DataFrame with one row per kept day
        """
        if every < 1:
            raise ValueError("every must be at least 1")
        return pd.DataFrame([asdict(d) for d in self.daily[::every]])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quarterly': [asdict(q) for q in self.quarterly],
            'daily': [asdict(d) for d in self.daily],
            'summary': asdict(self.summary),
        }


def partition_windows(n_days: int, window_size: int = DAYS_IN_QUARTER) -> List[Tuple[int, int]]:
    """
    Split n_days positions into contiguous quarter windows

    Args:
        n_days: Number of daily records
        window_size: Days per window

    Returns:
        List of inclusive (start, end) positions; the last window may be shorter
    """
    if window_size < 1:
        raise ValueError("window_size must be at least 1")
    return [
        (start, min(start + window_size - 1, n_days - 1))
        for start in range(0, n_days, window_size)
    ]


def validate_records(records: Sequence[Any], params: SimulationParameters) -> Tuple[DailyRecord, ...]:
    """
    Normalize and check the daily record sequence

    Args:
        records: DailyRecord values or mappings with DailyRecord field names
        params: Parameters (total supply bounds the reward pool)

    Returns:
        Tuple of DailyRecord

    Raises:
        InvalidInput: on empty input, missing fields, gaps in the day index,
            non-positive prices, negative counts or negative circulating supply
    """
    if records is None or len(records) == 0:
        logger.warning("Rejecting empty daily record sequence")
        raise InvalidInput("Daily record sequence is empty")

    normalized = []
    for position, record in enumerate(records):
        if isinstance(record, Mapping):
            record = DailyRecord.from_mapping(record)
        elif not isinstance(record, DailyRecord):
            raise InvalidInput(f"Unsupported record type at position {position}: {type(record).__name__}")
        for f in fields(DailyRecord):
            if not _is_number(getattr(record, f.name)):
                raise InvalidInput(
                    f"Record at position {position} is missing required field '{f.name}' or it is not a finite number"
                )
        normalized.append(record)

    for position, record in enumerate(normalized):
        if position > 0 and record.day != normalized[position - 1].day + 1:
            raise InvalidInput(
                f"Day index must increase by one per record: day {normalized[position - 1].day} "
                f"is followed by day {record.day}"
            )
        if record.token_price <= 0:
            raise InvalidInput(f"Token price on day {record.day} must be positive, got {record.token_price}")
        counts = record.tier_counts() + record.active_counts()
        if any(count < 0 for count in counts):
            raise InvalidInput(f"NFT counts on day {record.day} must not be negative")
        if record.reward_pool_tokens < 0:
            raise InvalidInput(f"Reward pool on day {record.day} must not be negative")
        if params.total_token_supply - record.reward_pool_tokens < 0:
            logger.warning("Reward pool exceeds total supply on day %s", record.day)
            raise InvalidInput(
                f"Circulating supply on day {record.day} would be negative: reward pool "
                f"{record.reward_pool_tokens:,.0f} exceeds total supply {params.total_token_supply:,.0f}"
            )

    return tuple(normalized)


class LTVCalculator:
    """
    Lifetime value of the NFT holder base

    The same retention rate discounts every tier's base LTV.
    """

    def __init__(self, params: SimulationParameters):
        """
        Initialize with tier base LTVs and retention

        Args:
            params: Simulation parameters
        """
        self.retention_rate = params.retention_rate
        self.tier_ltv = tuple(
            base * (self.retention_rate / 100) for base in params.tier_ltv_bases()
        )

    def total_user_ltv(self, record: DailyRecord) -> float:
        """Sum of tier holder counts weighted by retained per-tier LTV"""
        return sum(count * ltv for count, ltv in zip(record.tier_counts(), self.tier_ltv))

    def avg_lifetime_value(self, record: DailyRecord) -> float:
        total_nfts = record.total_nfts
        if total_nfts == 0:
            return 0.0
        return self.total_user_ltv(record) / total_nfts

    def calculate(self, record: DailyRecord) -> Tuple[float, float]:
        """
        LTV figures at a window's last day

        Returns:
            Tuple of (total_user_ltv, avg_lifetime_value)
        """
        return self.total_user_ltv(record), self.avg_lifetime_value(record)


class PriceModel:
    """
    Modeled token price driven by buyback, distribution and sentiment effects

    Two recurrences share the per-quarter coefficients:
    - quarter chain: seeded with the first quarter's actual end price, then
      compounded by each quarter's own total effect
    - daily series: inside each quarter the effect is spread evenly over the
      window and compounded per day from the quarter's actual opening price,
      so model error never carries across quarter boundaries
    """

    def __init__(self, window_size: int = DAYS_IN_QUARTER):
        self.window_size = window_size

    @staticmethod
    def quarter_price(previous_price: Optional[float], actual_price: float,
                      buyback_effect: float, distribution_effect: float,
                      sentiment_effect: float) -> float:
        """
        Next link of the quarter-level price chain

        Args:
            previous_price: Modeled price of the previous quarter, None for the first quarter
            actual_price: Observed price at the end of this quarter
            buyback_effect: This quarter's buyback coefficient
            distribution_effect: This quarter's distribution coefficient
            sentiment_effect: This quarter's sentiment coefficient

        Returns:
            Modeled price for this quarter
        """
        if previous_price is None:
            return actual_price
        return previous_price * (1 + buyback_effect + distribution_effect + sentiment_effect)

    def quarter_chain(self, quarters: Sequence[QuarterSummary]) -> List[float]:
        """Rebuild the quarter-level modeled prices from stored coefficients"""
        prices = []
        previous = None
        for q in quarters:
            previous = self.quarter_price(
                previous, q.actual_token_price,
                q.buyback_price_effect, q.distribution_price_effect, q.sentiment_effect
            )
            prices.append(previous)
        return prices

    def daily_series(self, records: Sequence[DailyRecord], quarters: Sequence[QuarterSummary],
                     total_token_supply: float) -> List[DailyModeledPrice]:
        """
        Day-by-day modeled price, rebased to the observed price each quarter

        Args:
            records: Validated daily records
            quarters: Quarter summaries for the same records
            total_token_supply: Total supply for the circulating supply column

        Returns:
            One DailyModeledPrice per record
        """
        windows = partition_windows(len(records), self.window_size)
        if len(windows) != len(quarters):
            raise InvalidInput(
                f"Expected {len(windows)} quarter summaries for {len(records)} days, got {len(quarters)}"
            )

        daily = []
        for (start, end), q in zip(windows, quarters):
            daily_buyback = q.buyback_price_effect / self.window_size
            daily_distribution = q.distribution_price_effect / self.window_size
            daily_sentiment = q.sentiment_effect / self.window_size
            growth = 1 + daily_buyback + daily_distribution + daily_sentiment

            base_price = records[start].token_price
            offsets = np.arange(end - start + 1)
            modeled = base_price * np.power(growth, offsets)

            for offset, record in enumerate(records[start:end + 1]):
                daily.append(DailyModeledPrice(
                    day=record.day,
                    actual_token_price=record.token_price,
                    modeled_token_price=float(modeled[offset]),
                    reward_pool=record.reward_pool_tokens,
                    circulating_supply=total_token_supply - record.reward_pool_tokens,
                ))
        return daily


@dataclass(frozen=True)
class AggregatorState:
    """Accumulator threaded through the quarter fold"""
    cumulative_buyback: float = 0.0
    previous_tier_counts: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    previous_modeled_price: Optional[float] = None


class QuarterAggregator:
    """
    Folds the daily record sequence into quarter summaries

    Each window's revenue comes from net NFT issuance against the last day
    before the window (zero for the first window), priced per tier and split
    into buyback, user rewards and company gross profit.
    """

    def __init__(self, params: SimulationParameters, window_size: int = DAYS_IN_QUARTER,
                 ltv_calculator: Optional[LTVCalculator] = None,
                 price_model: Optional[PriceModel] = None):
        self.params = params
        self.window_size = window_size
        self.ltv_calculator = ltv_calculator or LTVCalculator(params)
        self.price_model = price_model or PriceModel(window_size)

    def aggregate(self, records: Sequence[DailyRecord]) -> List[QuarterSummary]:
        """
        Compute quarter summaries for validated records

        Args:
            records: Validated, ordered daily records

        Returns:
            Quarter summaries ordered by quarter index (starting at 1)
        """
        if len(records) == 0:
            raise InvalidInput("Daily record sequence is empty")

        state = AggregatorState()
        quarters = []
        for index, (start, end) in enumerate(partition_windows(len(records), self.window_size)):
            summary, state = self.process_window(records, index, start, end, state)
            quarters.append(summary)
        return quarters

    def process_window(self, records: Sequence[DailyRecord], index: int, start: int, end: int,
                       state: AggregatorState) -> Tuple[QuarterSummary, AggregatorState]:
        """
        Compute one quarter and advance the accumulator

        Args:
            records: Validated daily records
            index: 0-based window index
            start: Position of the window's first record
            end: Position of the window's last record (inclusive)
            state: Accumulator after the previous window

        Returns:
            Tuple of (QuarterSummary, new AggregatorState)
        """
        p = self.params
        start_row = records[start]
        end_row = records[end]
        window = records[start:end + 1]

        # Activity totals
        total_meetings = sum(r.meetings for r in window)
        total_new_nfts = sum(r.new_nfts for r in window)
        total_nft_value = sum(r.new_nfts_value for r in window)
        days_in_window = end_row.day - start_row.day + 1

        # Net issuance against the day before the window
        new_silver, new_gold, new_platinum = (
            count - baseline
            for count, baseline in zip(end_row.tier_counts(), state.previous_tier_counts)
        )
        silver_price, gold_price, platinum_price = p.tier_prices()
        silver_revenue = new_silver * silver_price
        gold_revenue = new_gold * gold_price
        platinum_revenue = new_platinum * platinum_price
        nft_revenue = silver_revenue + gold_revenue + platinum_revenue

        # Revenue distribution
        buyback_amount = nft_revenue * (p.buyback_percentage / 100)
        user_rewards_amount = nft_revenue * (p.user_rewards_percentage / 100)
        gross_profit_amount = nft_revenue * (p.company_profit_percentage / 100)
        cumulative_buyback = state.cumulative_buyback + buyback_amount

        # Costs
        marketing_costs = nft_revenue * (p.marketing_percentage / 100)
        avg_active_users = sum(
            (s + e) / 2 for s, e in zip(start_row.active_counts(), end_row.active_counts())
        )
        operational_costs = (
            p.operational_costs_base
            + avg_active_users * p.operational_costs_per_user * days_in_window
        )

        net_profit = gross_profit_amount - marketing_costs - operational_costs
        net_profit_margin = (net_profit / nft_revenue) * 100 if nft_revenue > 0 else 0.0

        # Token metrics at the end of the window
        actual_token_price = end_row.token_price
        tokens_bought_back = buyback_amount / actual_token_price
        tokens_distributed = user_rewards_amount / actual_token_price

        circulating_supply = p.total_token_supply - end_row.reward_pool_tokens
        if circulating_supply <= 0:
            logger.warning("No circulating supply at the end of quarter %d", index + 1)
            raise InvalidInput(
                f"Circulating supply at day {end_row.day} must be positive, got {circulating_supply:,.0f}"
            )
        market_cap = circulating_supply * actual_token_price

        # Half of all buyback so far is assumed to deepen liquidity
        estimated_liquidity = p.initial_liquidity + cumulative_buyback * 0.5
        if estimated_liquidity <= 0:
            logger.warning("No liquidity at the end of quarter %d", index + 1)
            raise InvalidInput(
                f"Estimated liquidity for quarter {index + 1} must be positive; "
                f"set initial_liquidity above zero"
            )

        # Raw price-effect coefficients
        liquidity_ratio = buyback_amount / estimated_liquidity
        buyback_price_effect = liquidity_ratio * (p.buyback_price_impact / 100)
        distribution_price_effect = (
            (tokens_distributed / circulating_supply) * (p.reward_distribution_impact / 100) * -1
        )
        sentiment_effect = p.market_sentiment / 100

        modeled_token_price = self.price_model.quarter_price(
            state.previous_modeled_price, actual_token_price,
            buyback_price_effect, distribution_price_effect, sentiment_effect
        )

        total_user_ltv, avg_lifetime_value = self.ltv_calculator.calculate(end_row)

        summary = QuarterSummary(
            quarter=index + 1,
            day_start=start_row.day,
            day_end=end_row.day,
            silver_nfts=end_row.silver_nfts,
            gold_nfts=end_row.gold_nfts,
            platinum_nfts=end_row.platinum_nfts,
            active_silver_nfts=end_row.active_silver_nfts,
            active_gold_nfts=end_row.active_gold_nfts,
            active_platinum_nfts=end_row.active_platinum_nfts,
            total_nfts=end_row.total_nfts,
            active_total_nfts=end_row.active_total_nfts,
            meetings=total_meetings,
            meetings_per_day=total_meetings / days_in_window,
            reward_pool=end_row.reward_pool_tokens,
            new_nfts=total_new_nfts,
            new_nfts_value=total_nft_value,
            new_silver=new_silver,
            new_gold=new_gold,
            new_platinum=new_platinum,
            silver_revenue=silver_revenue,
            gold_revenue=gold_revenue,
            platinum_revenue=platinum_revenue,
            nft_revenue=nft_revenue,
            buyback_amount=buyback_amount,
            user_rewards_amount=user_rewards_amount,
            gross_profit_amount=gross_profit_amount,
            marketing_costs=marketing_costs,
            operational_costs=operational_costs,
            net_profit=net_profit,
            net_profit_margin=net_profit_margin,
            actual_token_price=actual_token_price,
            modeled_token_price=modeled_token_price,
            tokens_bought_back=tokens_bought_back,
            tokens_distributed=tokens_distributed,
            circulating_supply=circulating_supply,
            market_cap=market_cap,
            estimated_liquidity=estimated_liquidity,
            buyback_price_effect=buyback_price_effect,
            distribution_price_effect=distribution_price_effect,
            sentiment_effect=sentiment_effect,
            total_user_ltv=total_user_ltv,
            avg_lifetime_value=avg_lifetime_value,
        )

        logger.debug(
            "Quarter %d (days %d-%d): revenue=%.2f buyback=%.2f modeled_price=%.6f",
            summary.quarter, summary.day_start, summary.day_end,
            nft_revenue, buyback_amount, modeled_token_price
        )

        new_state = AggregatorState(
            cumulative_buyback=cumulative_buyback,
            previous_tier_counts=end_row.tier_counts(),
            previous_modeled_price=modeled_token_price,
        )
        return summary, new_state


class SummaryReducer:
    """Folds quarters and daily data into horizon-wide metrics"""

    def reduce(self, quarters: Sequence[QuarterSummary], records: Sequence[DailyRecord],
               daily: Sequence[DailyModeledPrice]) -> SummaryMetrics:
        """
        Calculate summary metrics for the full horizon

        Args:
            quarters: Quarter summaries
            records: Validated daily records
            daily: Daily modeled prices

        Returns:
            SummaryMetrics
        """
        if not records or not daily:
            raise InvalidInput("Cannot summarize an empty horizon")

        total_nft_revenue = sum(q.nft_revenue for q in quarters)
        total_buyback = sum(q.buyback_amount for q in quarters)
        total_user_rewards = sum(q.user_rewards_amount for q in quarters)
        total_gross_profit = sum(q.gross_profit_amount for q in quarters)
        total_marketing = sum(q.marketing_costs for q in quarters)
        total_operational = sum(q.operational_costs for q in quarters)

        # Recomputed from totals rather than summed per quarter
        total_net_profit = total_gross_profit - total_marketing - total_operational
        total_net_profit_margin = (
            (total_net_profit / total_nft_revenue) * 100 if total_nft_revenue > 0 else 0.0
        )

        first_row = records[0]
        last_row = records[-1]
        first_token_price = first_row.token_price
        last_token_price = last_row.token_price
        token_price_change = ((last_token_price / first_token_price) - 1) * 100
        avg_token_price = float(np.mean([r.token_price for r in records]))

        final_circulating_supply = daily[-1].circulating_supply
        estimated_market_cap = final_circulating_supply * daily[-1].actual_token_price

        initial_users = first_row.total_nfts
        final_users = last_row.total_nfts
        user_growth = ((final_users / initial_users) - 1) * 100 if initial_users > 0 else 0.0

        total_meetings = sum(r.meetings for r in records)
        avg_meetings_per_day = total_meetings / len(records)

        last_quarter = quarters[-1] if quarters else None

        return SummaryMetrics(
            total_nft_revenue=total_nft_revenue,
            buyback_amount=total_buyback,
            user_rewards_amount=total_user_rewards,
            gross_profit_amount=total_gross_profit,
            marketing_costs=total_marketing,
            operational_costs=total_operational,
            net_profit=total_net_profit,
            net_profit_margin=total_net_profit_margin,
            total_tokens_bought_back=sum(q.tokens_bought_back for q in quarters),
            first_token_price=first_token_price,
            last_token_price=last_token_price,
            avg_token_price=avg_token_price,
            token_price_change=token_price_change,
            modeled_token_price=last_quarter.modeled_token_price if last_quarter else 0.0,
            final_circulating_supply=final_circulating_supply,
            estimated_market_cap=estimated_market_cap,
            initial_users=initial_users,
            final_users=final_users,
            user_growth=user_growth,
            total_meetings=total_meetings,
            avg_meetings_per_day=avg_meetings_per_day,
            avg_ltv=last_quarter.avg_lifetime_value if last_quarter else 0.0,
            total_user_ltv=last_quarter.total_user_ltv if last_quarter else 0.0,
        )


def summarize(records: Sequence[Union[DailyRecord, Mapping[str, Any]]],
              params: Union[SimulationParameters, Mapping[str, Any], None] = None) -> SimulationResult:
    """
    Run the full model: quarters, daily modeled prices and summary metrics

    Args:
        records: Ordered daily records (DailyRecord or mappings of its fields)
        params: SimulationParameters, a mapping of parameter values, or None for defaults

    Returns:
        SimulationResult with quarterly, daily and summary outputs

    Raises:
        InvalidParameters: if the parameter set is invalid
        InvalidInput: if the records cannot be processed
    """
    if params is None:
        params = SimulationParameters()
    elif not isinstance(params, SimulationParameters):
        params = SimulationParameters.from_dict(params)
    params.validate()

    records = validate_records(records, params)

    price_model = PriceModel(DAYS_IN_QUARTER)
    aggregator = QuarterAggregator(params, DAYS_IN_QUARTER, LTVCalculator(params), price_model)
    quarters = aggregator.aggregate(records)
    daily = price_model.daily_series(records, quarters, params.total_token_supply)
    summary = SummaryReducer().reduce(quarters, records, daily)

    logger.info("Model run complete: %d days, %d quarters", len(records), len(quarters))

    return SimulationResult(quarterly=tuple(quarters), daily=tuple(daily), summary=summary)
