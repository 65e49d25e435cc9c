from __future__ import annotations

from functools import lru_cache

from alertmanager_matrix.clients.alertmanager import AlertmanagerClient
from alertmanager_matrix.clients.matrix import MatrixClient
from alertmanager_matrix.core.config import Settings, load_settings, load_string_map, load_text_file
from alertmanager_matrix.services.alerts import AlertService
from alertmanager_matrix.services.bot import AlertBot
from alertmanager_matrix.services.commands import CommandRouter, build_command_tree
from alertmanager_matrix.services.formatting import Formatter, FormatterConfig


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_formatter() -> Formatter:
    settings = get_settings()
    return Formatter(
        FormatterConfig(
            text_template=load_text_file(settings.text_template_file),
            html_template=load_text_file(settings.html_template_file),
            silence_template=load_text_file(settings.silence_template_file),
            colors=load_string_map(settings.color_file),
            icons=load_string_map(settings.icon_file),
        )
    )


@lru_cache
def get_alertmanager_client() -> AlertmanagerClient:
    return AlertmanagerClient(get_settings())


@lru_cache
def get_alert_service() -> AlertService:
    return AlertService(get_alertmanager_client(), get_formatter())


@lru_cache
def get_command_router() -> CommandRouter:
    return CommandRouter(build_command_tree(get_alert_service()))


@lru_cache
def get_matrix_client() -> MatrixClient:
    return MatrixClient(get_settings())


@lru_cache
def get_alert_bot() -> AlertBot:
    settings = get_settings()
    return AlertBot(get_matrix_client(), get_command_router(), rooms=settings.rooms)
