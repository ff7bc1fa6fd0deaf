# -*- coding: utf-8 -*-

import sys
import os
import argparse
from typing import List, NamedTuple

import pefile

from gg_config import (
    APP_TITLE, APP_VERSION, HOSTNAMES, MAX_DOMAIN_LENGTH,
    EXECUTABLE_SUFFIX, PATCHED_MARKER
)

# =============================================================================
# 1. ПОМИЛКИ
# =============================================================================

class PatchError(Exception):
    """Базовий клас для помилок, які виявляє шар перевірки навколо ядра."""
    default_message = "Blad patchowania"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


class MissingFileError(PatchError):
    default_message = "Nie wybrano pliku!"


class MissingAddressError(PatchError):
    default_message = "Podaj adres serwera!"


class AddressTooLongError(PatchError):
    def __init__(self, limit: int, length: int, hostname: str = None):
        self.limit, self.length, self.hostname = limit, length, hostname
        if hostname:
            super().__init__(f"Adres serwera max {limit} znakow, bo plik zawiera {hostname}! (masz: {length})")
        else:
            super().__init__(f"Adres serwera max {limit} znakow! (masz: {length})")


class InvalidAddressError(PatchError):
    default_message = "Adres serwera moze zawierac tylko drukowalne znaki ASCII (bez spacji)!"


class NoMatchesFoundError(PatchError):
    default_message = "Nie znaleziono domen do zamiany. Czy to oryginalny plik GG?"


class SizeMismatchError(PatchError):
    def __init__(self, expected: int, actual: int):
        self.expected, self.actual = expected, actual
        super().__init__(f"Blad: zmieniono rozmiar pliku! ({expected} -> {actual} B)")


class ReadFailureError(PatchError):
    default_message = "Blad odczytu pliku!"

# =============================================================================
# 2. ЯДРО ПАТЧЕРА
# =============================================================================

class PatchResult(NamedTuple):
    ascii_replacements: int = 0
    utf16_replacements: int = 0

    @property
    def total(self) -> int:
        return self.ascii_replacements + self.utf16_replacements


def encode_single_byte(text: str) -> bytes:
    """Один байт на символ (молодші 8 біт коду)."""
    return bytes(ord(ch) & 0xFF for ch in text)


def encode_double_byte_le(text: str) -> bytes:
    """Два байти на символ, little-endian (UTF-16LE без BOM)."""
    buf = bytearray(len(text) * 2)
    for i, ch in enumerate(text):
        code = ord(ch)
        buf[i * 2] = code & 0xFF
        buf[i * 2 + 1] = (code >> 8) & 0xFF
    return bytes(buf)


def find_all(data, pattern: bytes) -> List[int]:
    """Повертає всі зміщення входжень ``pattern`` у ``data`` за зростанням.

    Перекриття не відкидаються: після кожного збігу пошук продовжується
    з наступного байта, а не з кінця знайденого шаблону.
    """
    if not pattern:
        raise ValueError("pattern must not be empty")
    positions, start_index = [], 0
    while (index := data.find(pattern, start_index)) != -1:
        positions.append(index)
        start_index = index + 1
    return positions


def replace_all(data: bytearray, pattern: bytes, replacement: bytes) -> int:
    """Замінює всі входження на місці, доповнюючи заміну нулями до довжини шаблону.

    Спочатку збираються всі зміщення, потім запис іде за зростанням, тому
    при перекритті на спільних байтах залишається пізніший запис.
    Довша за шаблон заміна допустима лише тоді, коли входжень немає.
    """
    positions = find_all(data, pattern)
    if positions and len(replacement) > len(pattern):
        raise ValueError("replacement longer than pattern would change the file size")
    padded = replacement.ljust(len(pattern), b'\x00')
    for pos in positions:
        data[pos:pos + len(padded)] = padded
    return len(positions)


def patch_binary(data: bytearray, new_address: str) -> PatchResult:
    """Замінює всі домени з ``HOSTNAMES`` на ``new_address`` в ASCII та UTF-16LE.

    Довжину адреси (1..MAX_DOMAIN_LENGTH) перевіряє викликач. Якщо у файлі є
    домен, коротший за адресу, піднімається AddressTooLongError; буфер на цей
    момент може бути вже частково змінений і має бути відкинутий.
    """
    ascii_count, utf16_count = 0, 0
    address_ascii = encode_single_byte(new_address)
    address_utf16 = encode_double_byte_le(new_address)

    for hostname in HOSTNAMES:
        ascii_pattern = encode_single_byte(hostname)
        utf16_pattern = encode_double_byte_le(hostname)
        if len(new_address) > len(hostname):
            if find_all(data, ascii_pattern) or find_all(data, utf16_pattern):
                raise AddressTooLongError(len(hostname), len(new_address), hostname)
            continue
        ascii_count += replace_all(data, ascii_pattern, address_ascii)
        utf16_count += replace_all(data, utf16_pattern, address_utf16)

    return PatchResult(ascii_count, utf16_count)

# =============================================================================
# 3. РОБОТА З ФАЙЛАМИ
# =============================================================================

MACHINE_NAMES = {0x14c: 'x86', 0x8664: 'x64'}


def patched_file_name(file_name: str) -> str:
    """``gg.exe`` -> ``gg_patched.exe``; суфікс .exe знімається без урахування регістру."""
    base = os.path.basename(file_name)
    if base.lower().endswith(EXECUTABLE_SUFFIX):
        base = base[:-len(EXECUTABLE_SUFFIX)]
    return f"{base}{PATCHED_MARKER}{EXECUTABLE_SUFFIX}"


def describe_file(path: str):
    """Тип і архітектура PE файлу для відображення; None, якщо немає сигнатури MZ."""
    with open(path, 'rb') as f:
        if f.read(2) != b'MZ':
            return None
    info = {'path': path, 'size': os.path.getsize(path), 'type': 'PE', 'arch': '?'}
    try:
        pe = pefile.PE(path, fast_load=True)
    except pefile.PEFormatError:
        return info
    try:
        info['type'] = 'DLL' if pe.is_dll() else 'EXE' if pe.is_exe() else 'PE'
        info['arch'] = MACHINE_NAMES.get(pe.FILE_HEADER.Machine, '?')
    finally:
        pe.close()
    return info


class GGPatcher:
    def __init__(self, file_path: str, new_address: str, log_callback=None):
        self.file_path = file_path
        self.new_address = (new_address or '').strip()
        self.log_callback = log_callback
        self.data, self.result = None, None

    def log(self, message, level="info"):
        if self.log_callback: self.log_callback(message, level)

    def validate(self):
        if not self.file_path:
            raise MissingFileError()
        if not os.path.exists(self.file_path):
            raise MissingFileError(f"Nie znaleziono pliku: {self.file_path}")
        if not self.new_address:
            raise MissingAddressError()
        if len(self.new_address) > MAX_DOMAIN_LENGTH:
            raise AddressTooLongError(MAX_DOMAIN_LENGTH, len(self.new_address))
        if not all('!' <= ch <= '~' for ch in self.new_address):
            raise InvalidAddressError()

    def load_file(self):
        try:
            with open(self.file_path, 'rb') as f: self.data = bytearray(f.read())
            info = describe_file(self.file_path)
        except OSError as e:
            self.data = None
            raise ReadFailureError(f"Blad odczytu pliku! ({e})") from e

        name = os.path.basename(self.file_path)
        if info is None:
            self.log(f"⚠️ {name}: brak sygnatury MZ, to nie wygląda na plik wykonywalny", "warning")
        else:
            self.log(f"📂 {name}: {info['type']} · {info['arch']} · {info['size']} B", "info")

    def patch_all(self) -> PatchResult:
        self.validate()
        if self.data is None: self.load_file()
        self.log(f"🔄 Patchowanie {os.path.basename(self.file_path)} -> {self.new_address}...", "info")

        original_size = len(self.data)
        try:
            result = patch_binary(self.data, self.new_address)
        except AddressTooLongError:
            self.data = None
            raise

        # Розмір файлу не повинен змінитися
        if len(self.data) != original_size:
            actual = len(self.data)
            self.data = None
            raise SizeMismatchError(original_size, actual)

        if result.total == 0:
            raise NoMatchesFoundError()

        self.log("📈 Statystyka patchowania:", "info")
        self.log(f"   ASCII: {result.ascii_replacements}x", "info")
        self.log(f"   UTF-16: {result.utf16_replacements}x", "info")
        self.log(f"   RAZEM: {result.total}x *.gadu-gadu.pl -> {self.new_address}", "success")

        self.result = result
        return result

    def output_name(self) -> str:
        return patched_file_name(self.file_path)

    def save(self, output_dir: str = None) -> str:
        if self.result is None or self.data is None:
            raise RuntimeError("nothing to save: patch_all() has not succeeded")
        output_dir = output_dir or os.path.dirname(os.path.abspath(self.file_path))
        os.makedirs(output_dir, exist_ok=True)

        out_name = self.output_name()
        out_path, cnt = os.path.join(output_dir, out_name), 1
        base, ext = os.path.splitext(out_name)
        while os.path.exists(out_path):
            out_path = os.path.join(output_dir, f"{base}{cnt}{ext}")
            cnt += 1

        with open(out_path, 'wb') as f: f.write(self.data)
        self.log(f"💾 Zapisano: {os.path.basename(out_path)}", "success")
        return out_path

    def close(self):
        self.data = None


def patch_file(file_path: str, new_address: str, output_dir: str = None, log_callback=None):
    """Перевірка, патчинг і збереження за один виклик; повертає (PatchResult, шлях)."""
    patcher = GGPatcher(file_path, new_address, log_callback=log_callback)
    try:
        result = patcher.patch_all()
        return result, patcher.save(output_dir)
    finally:
        patcher.close()

# =============================================================================
# 4. КОМАНДНИЙ РЯДОК
# =============================================================================

def _print_log(message, level="info"):
    print(message, file=sys.stderr if level == "error" else sys.stdout)


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="gg-patcher",
        description=f"{APP_TITLE} {APP_VERSION}: podmiana serwerów *.gadu-gadu.pl w pliku GG",
    )
    parser.add_argument("file", help="oryginalny plik wykonywalny GG")
    parser.add_argument("address", help=f"nowy adres serwera (max {MAX_DOMAIN_LENGTH} znakow)")
    parser.add_argument("-o", "--output-dir", default=None, help="katalog dla spatchowanego pliku")
    args = parser.parse_args(argv)

    try:
        patch_file(args.file, args.address, args.output_dir, log_callback=_print_log)
    except (PatchError, OSError) as e:
        _print_log(f"❌ {e}", "error")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
