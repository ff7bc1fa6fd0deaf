# -*- coding: utf-8 -*-
# Файл конфігурації
# ВАЖЛИВО: адреса для заміни не може бути довшою за найдовший домен
# з таблиці, інакше патч змінить розмір файлу.
# Коротші адреси доповнюються нульовими байтами \x00.

import os
import sys
from configparser import ConfigParser

APP_TITLE = "GG Server Patcher"
APP_VERSION = "1.0.0"

HOSTNAMES = (
    'appmsg.gadu-gadu.pl',    # хаб
    'register.gadu-gadu.pl',  # реєстрація (найдовший)
    'adserver.gadu-gadu.pl',  # реклама
    'update.gadu-gadu.pl',    # автооновлення
    'www.gadu-gadu.pl',       # сайт
    'pubdir.gadu-gadu.pl',    # публічний каталог
    'retr.gadu-gadu.pl',
    'smsat.gadu-gadu.pl',     # SMS
)

MAX_DOMAIN_LENGTH = max(len(h) for h in HOSTNAMES)

EXECUTABLE_SUFFIX = '.exe'
PATCHED_MARKER = '_patched'

SETTINGS_FILE = "settings.ini"
SETTINGS_SECTION = "Settings"


def get_base_path():
    """ Повертає шлях до папки з .exe або .py файлом """
    if getattr(sys, 'frozen', False):
        return os.path.dirname(sys.executable)
    else:
        return os.path.dirname(os.path.abspath(__file__))


def get_settings_path():
    return os.path.join(get_base_path(), SETTINGS_FILE)


def load_settings(path: str = None) -> dict:
    path = path or get_settings_path()
    settings = {'server_address': '', 'output_dir': ''}
    if not os.path.exists(path):
        return settings
    config = ConfigParser()
    try:
        config.read(path, encoding='utf-8')
    except Exception as e:
        print(f"❌ Error loading settings file {path}: {e}")
        return settings
    for key in settings:
        settings[key] = config.get(SETTINGS_SECTION, key, fallback='')
    return settings


def save_settings(server_address: str, output_dir: str, path: str = None):
    path = path or get_settings_path()
    config = ConfigParser()
    config.add_section(SETTINGS_SECTION)
    config.set(SETTINGS_SECTION, "server_address", server_address or '')
    config.set(SETTINGS_SECTION, "output_dir", output_dir or '')
    with open(path, 'w', encoding='utf-8') as f:
        config.write(f)
