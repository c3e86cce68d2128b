from .rules import (  # noqa: F401
    EXIT_MOMENTUM_REVERSAL,
    EXIT_SCENARIO_COMPLETE,
    EXIT_SCENARIO_INVALIDATED,
    EXIT_SIGNAL,
    EXIT_STOP_BREACH,
    Rule,
    and_rules,
    exit_reason,
    exit_rule,
    impulse_rule,
    momentum_rule,
    not_rule,
    or_rules,
    over_indicator_rule,
    over_threshold_rule,
    reward_risk_ratio,
    trend_rule,
)
from .strategy import (  # noqa: F401
    DEFAULT_NAME,
    NamedStrategy,
    Strategy,
    StrategySettings,
    build_high_reward_strategy,
    high_reward_analyzer_settings,
)
