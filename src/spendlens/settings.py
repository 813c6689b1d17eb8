"""Service settings for SpendLens cost analytics."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the SpendLens cost analytics service.

    Covers the billing data source, engine thresholds, team budget policy,
    and the budget-alert notification transport.
    """

    service_name: str = "spendlens"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_json: bool = True

    # Billing data source
    data_source: str = "demo"  # demo | csv
    csv_path: str | None = None
    demo_profile: str = "startup-saas"
    demo_days: int = 90
    demo_seed: int | None = None

    # Query defaults
    default_lookback_days: int = 30
    default_forecast_days: int = 30
    default_confidence_level: float = 0.95

    # Anomaly detection
    anomaly_min_increase_pct: float = 40.0  # Spike must exceed baseline by this percentage
    anomaly_min_spend: float = 400.0  # Absolute daily spend gate (noise floor)
    anomaly_window_days: int = 7
    anomaly_scan_limit: int = 30
    anomaly_max_results: int = 5

    # Team budget policy
    default_budget_multiplier: float = 1.0
    team_budget_multipliers: dict[str, float] = {
        "Engineering": 1.1,
        "Data": 0.95,
        "Platform": 1.05,
        "DevOps": 1.2,
        "ML": 0.85,
        "Unallocated": 1.5,
    }
    team_budget_owners: dict[str, str] = {
        "Engineering": "eng-lead@company.com",
        "Data": "data-lead@company.com",
        "Platform": "platform-lead@company.com",
        "DevOps": "devops-lead@company.com",
        "ML": "ml-lead@company.com",
        "Unallocated": "finance@company.com",
    }
    budget_owner_domain: str = "company.com"
    default_alert_threshold_pct: float = 80.0

    # Budget alert delivery
    notifications_enabled: bool = False
    notification_webhook_url: str = "http://localhost:54321/functions/v1/budget-alert-notification"
    notification_timeout_seconds: int = 10

    model_config = SettingsConfigDict(env_prefix="SPENDLENS_")
