from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Completion provider (OpenAI-compatible chat completions API)
    completion_api_key: str = ""
    completion_base_url: str = "https://api.deepseek.com"
    completion_model: str = "deepseek-reasoner"
    completion_max_tokens: int = 4000
    completion_temperature: float = 0.7
    completion_timeout_seconds: float = 30.0

    # Search provider
    search_provider: str = "tavily"  # tavily | brave
    tavily_api_key: str = ""
    brave_api_key: str = ""
    search_fallback_to_tavily: bool = True
    search_max_results: int = 10
    search_depth: str = "advanced"  # basic | advanced
    search_include_answer: bool = True

    # Stream pipeline
    relay_repair_deltas: bool = True
    stream_buffer_partial_lines: bool = False
    canonical_sources_table: bool = False

    # Remote mode: talk to a running deepsearch server instead of the providers
    deepsearch_server_url: str = ""

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"  # empty disables the file sink

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
