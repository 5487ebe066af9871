"""
Services package for the Season Calendar

This package contains all business logic and service layer components.
"""
from season_calendar.services.document_store import DocumentStore, StoreError, StoreReadError, StoreWriteError
from season_calendar.services.schedule_generator import generate_season_schedule
from season_calendar.services.schedule_service import ScheduleSession, ToggleResult, plan_toggle
from season_calendar.services.navigation_service import NavigationBoundsError, NavigationSession
from season_calendar.services.settings_service import SettingsSession, filter_channel_indexes
from season_calendar.services.countdown_service import CountdownService
from season_calendar.services.scheduler_service import countdown_scheduler

__all__ = [
    'DocumentStore',
    'StoreError',
    'StoreReadError',
    'StoreWriteError',
    'generate_season_schedule',
    'ScheduleSession',
    'ToggleResult',
    'plan_toggle',
    'NavigationBoundsError',
    'NavigationSession',
    'SettingsSession',
    'filter_channel_indexes',
    'CountdownService',
    'countdown_scheduler',
]
