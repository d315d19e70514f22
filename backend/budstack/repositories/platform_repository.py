"""
Platform settings repository (single row, id = 'platform')
"""
from typing import Dict, Any

from budstack.domain.platform import PlatformSettings, PLATFORM_SETTINGS_ID
from budstack.repositories.base import BaseRepository


SETTINGS_COLUMNS = (
    'business_name', 'tagline', 'primary_color', 'secondary_color', 'accent_color',
    'font_family', 'heading_font_family', 'template', 'logo_url', 'favicon_url',
)


class PlatformSettingsRepository(BaseRepository):

    def get(self) -> PlatformSettings:
        """Stored settings, or defaults when the row doesn't exist yet"""
        row = self._fetch_one(
            f"SELECT id, {', '.join(SETTINGS_COLUMNS)}, updated_at FROM platform_settings WHERE id = %s",
            (PLATFORM_SETTINGS_ID,)
        )
        return PlatformSettings(**row) if row else PlatformSettings()

    def upsert(self, fields: Dict[str, Any]) -> PlatformSettings:
        merged = self.get().model_dump()
        merged.update({key: value for key, value in fields.items() if key in SETTINGS_COLUMNS})

        columns = ", ".join(SETTINGS_COLUMNS)
        placeholders = ", ".join(["%s"] * len(SETTINGS_COLUMNS))
        updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in SETTINGS_COLUMNS)

        row = self._write_returning(f"""
            INSERT INTO platform_settings (id, {columns}, updated_at)
            VALUES (%s, {placeholders}, NOW())
            ON CONFLICT (id) DO UPDATE SET {updates}, updated_at = NOW()
            RETURNING id, {columns}, updated_at
        """, [PLATFORM_SETTINGS_ID] + [merged[column] for column in SETTINGS_COLUMNS])
        return PlatformSettings(**row)
