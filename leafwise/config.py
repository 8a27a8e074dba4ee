from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'LeafWise'
    log_level: str = 'INFO'

    data_dir: Path = Field(default=Path('./data'))

    # OpenAI-compatible vision endpoint used for identification
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices('OPENAI_API_KEY', 'API_KEY', 'LLM_API_KEY'),
    )
    openai_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices('BASE_URL', 'OPENAI_BASE_URL', 'LLM_BASE_URL'),
    )
    identify_model: str = 'gpt-4o-mini'
    identify_temperature: float = 0.2
    identify_max_tokens: int = 1500
    identify_timeout_seconds: int = 120

    # Image intake
    max_image_bytes: int = 10 * 1024 * 1024
    image_fetch_timeout_seconds: int = 30

    # History
    history_max_entries: int = 5

    # PDF export, lengths in millimetres
    pdf_page_width: float = 210.0
    pdf_page_height: float = 297.0
    pdf_page_margin: float = 14.0
    pdf_image_display_width: float = 80.0
    pdf_block_gap: float = 6.0
    pdf_title_line_height: float = 10.0
    pdf_subtitle_line_height: float = 7.0
    pdf_heading_height: float = 8.0
    pdf_body_line_height: float = 5.0
    pdf_table_label_width: float = 50.0
    pdf_table_line_height: float = 4.6
    pdf_table_cell_padding: float = 2.0
    pdf_table_min_row_height: float = 8.6
    pdf_table_header_height: float = 8.6
    # 'measured' uses reportlab font metrics, 'fixed' a per-character estimate
    pdf_text_measure: str = 'measured'
    pdf_fixed_char_width_ratio: float = 0.6
    pdf_footer_caption: str = 'Built with LeafWise'
    pdf_footer_offset: float = 6.0
    # CID font used when report text falls outside the standard fonts' WinAnsi set
    pdf_unicode_font: str = 'STSong-Light'

    def reports_dir(self) -> Path:
        return self.data_dir / 'reports'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
