import os

import pytest

import gg_patcher
from gg_patcher import (
    AddressTooLongError,
    GGPatcher,
    InvalidAddressError,
    MissingAddressError,
    MissingFileError,
    NoMatchesFoundError,
    PatchError,
    ReadFailureError,
    SizeMismatchError,
    describe_file,
    main,
    patch_file,
    patched_file_name,
)

GG_PAYLOAD = (
    b"MZ" + b"\x00" * 62
    + b"appmsg.gadu-gadu.pl\x00"
    + "pubdir.gadu-gadu.pl".encode("utf-16-le")
    + b"\x00\x00"
)


def collect_logs():
    messages = []
    return messages, lambda message, level: messages.append((level, message))


def test_error_hierarchy() -> None:
    for error_class in (
        MissingFileError, MissingAddressError, NoMatchesFoundError, ReadFailureError,
        InvalidAddressError,
    ):
        assert issubclass(error_class, PatchError)
    assert issubclass(AddressTooLongError, PatchError)
    assert issubclass(SizeMismatchError, PatchError)


def test_validate_requires_file() -> None:
    with pytest.raises(MissingFileError):
        GGPatcher(None, "gg.example.net").validate()
    with pytest.raises(MissingFileError):
        GGPatcher("", "gg.example.net").validate()


def test_validate_reports_nonexistent_path(tmp_path) -> None:
    with pytest.raises(MissingFileError, match="gg.exe"):
        GGPatcher(str(tmp_path / "gg.exe"), "gg.example.net").validate()


@pytest.mark.parametrize("address", ["", "   ", None])
def test_validate_requires_address(gg_binary, address) -> None:
    path = gg_binary(GG_PAYLOAD)
    with pytest.raises(MissingAddressError):
        GGPatcher(str(path), address).validate()


def test_address_is_stripped(gg_binary) -> None:
    patcher = GGPatcher(str(gg_binary(GG_PAYLOAD)), "  gg.example.net \n")
    assert patcher.new_address == "gg.example.net"


def test_too_long_address_rejected_before_core(gg_binary, monkeypatch) -> None:
    def unexpected_call(data, new_address):
        raise AssertionError("core must not run")

    monkeypatch.setattr(gg_patcher, "patch_binary", unexpected_call)
    patcher = GGPatcher(str(gg_binary(GG_PAYLOAD)), "a" * 22)

    with pytest.raises(AddressTooLongError) as excinfo:
        patcher.patch_all()
    assert excinfo.value.limit == 21
    assert excinfo.value.length == 22
    assert "21" in str(excinfo.value) and "22" in str(excinfo.value)
    assert patcher.data is None


def test_address_at_limit_accepted(gg_binary) -> None:
    patcher = GGPatcher(str(gg_binary(GG_PAYLOAD)), "a" * 21)
    patcher.validate()


def test_patch_all_counts_and_logs(gg_binary) -> None:
    messages, log = collect_logs()
    patcher = GGPatcher(str(gg_binary(GG_PAYLOAD)), "gg.example.net", log_callback=log)

    result = patcher.patch_all()

    assert result.ascii_replacements == 1
    assert result.utf16_replacements == 1
    assert len(patcher.data) == len(GG_PAYLOAD)
    assert b"gg.example.net\x00\x00\x00\x00\x00\x00" in patcher.data
    assert ("success", "   RAZEM: 2x *.gadu-gadu.pl -> gg.example.net") in messages


def test_no_matches(gg_binary) -> None:
    patcher = GGPatcher(str(gg_binary(b"MZ" + b"\x00" * 100)), "gg.example.net")
    with pytest.raises(NoMatchesFoundError):
        patcher.patch_all()


def test_size_drift_is_fatal(gg_binary, monkeypatch) -> None:
    def growing_patch(data, new_address):
        data.extend(b"\x00")
        return gg_patcher.PatchResult(1, 0)

    monkeypatch.setattr(gg_patcher, "patch_binary", growing_patch)
    patcher = GGPatcher(str(gg_binary(GG_PAYLOAD)), "gg.example.net")

    with pytest.raises(SizeMismatchError) as excinfo:
        patcher.patch_all()
    assert excinfo.value.expected == len(GG_PAYLOAD)
    assert excinfo.value.actual == len(GG_PAYLOAD) + 1
    assert patcher.data is None
    with pytest.raises(RuntimeError):
        patcher.save()


def test_read_failure(tmp_path) -> None:
    folder = tmp_path / "gg.exe"
    folder.mkdir()
    with pytest.raises(ReadFailureError):
        GGPatcher(str(folder), "gg.example.net").patch_all()


def test_non_mz_file_warns_but_patches(gg_binary) -> None:
    messages, log = collect_logs()
    path = gg_binary(b"not an exe www.gadu-gadu.pl", name="dump.bin")
    result = GGPatcher(str(path), "gg.local", log_callback=log).patch_all()
    assert result.ascii_replacements == 1
    assert any(level == "warning" for level, _ in messages)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("gg.exe", "gg_patched.exe"),
        ("GG.EXE", "GG_patched.exe"),
        ("Gadu.Exe", "Gadu_patched.exe"),
        ("gg.bin", "gg.bin_patched.exe"),
        (os.path.join("some", "dir", "gg.exe"), "gg_patched.exe"),
    ],
)
def test_patched_file_name(name, expected) -> None:
    assert patched_file_name(name) == expected


def test_save_writes_patched_copy_next_to_original(gg_binary) -> None:
    path = gg_binary(GG_PAYLOAD)
    patcher = GGPatcher(str(path), "gg.example.net")
    patcher.patch_all()

    out_path = patcher.save()

    assert os.path.basename(out_path) == "gg_patched.exe"
    assert os.path.dirname(out_path) == str(path.parent)
    with open(out_path, "rb") as f:
        written = f.read()
    assert written == bytes(patcher.data)
    assert len(written) == len(GG_PAYLOAD)
    assert path.read_bytes() == GG_PAYLOAD


def test_save_never_overwrites(gg_binary, tmp_path) -> None:
    path = gg_binary(GG_PAYLOAD)
    existing = tmp_path / "gg_patched.exe"
    existing.write_bytes(b"keep me")

    patcher = GGPatcher(str(path), "gg.example.net")
    patcher.patch_all()
    out_path = patcher.save()

    assert os.path.basename(out_path) == "gg_patched1.exe"
    assert existing.read_bytes() == b"keep me"


def test_save_into_output_dir(gg_binary, tmp_path) -> None:
    out_dir = tmp_path / "out" / "nested"
    result, out_path = patch_file(str(gg_binary(GG_PAYLOAD)), "gg.example.net", str(out_dir))
    assert result.total == 2
    assert os.path.dirname(out_path) == str(out_dir)
    assert os.path.getsize(out_path) == len(GG_PAYLOAD)


def test_describe_file(gg_binary) -> None:
    assert describe_file(str(gg_binary(b"\x7fELF" + b"\x00" * 60, name="a.out"))) is None

    info = describe_file(str(gg_binary(b"MZ" + b"\x00" * 100)))
    assert info["size"] == 102
    assert info["type"] == "PE"
    assert info["arch"] == "?"


def test_cli_success(gg_binary, capsys) -> None:
    path = gg_binary(GG_PAYLOAD)
    assert main([str(path), "gg.example.net"]) == 0
    assert (path.parent / "gg_patched.exe").exists()
    assert "gg_patched.exe" in capsys.readouterr().out


def test_cli_rejects_long_address(gg_binary, capsys) -> None:
    path = gg_binary(GG_PAYLOAD)
    assert main([str(path), "a" * 30]) == 1
    assert "30" in capsys.readouterr().err
    assert not (path.parent / "gg_patched.exe").exists()


def test_cli_no_matches(gg_binary, capsys) -> None:
    path = gg_binary(b"MZ" + b"\x00" * 100)
    assert main([str(path), "gg.example.net"]) == 1
    assert "Nie znaleziono domen" in capsys.readouterr().err


LONG_HOSTNAMES_PAYLOAD = (
    b"MZ" + b"\x00" * 62
    + b"register.gadu-gadu.pl\x00"
    + "adserver.gadu-gadu.pl".encode("utf-16-le")
    + b"\x00\x00"
)


@pytest.mark.parametrize("length", [17, 20, 21])
def test_long_address_fits_long_hostnames(gg_binary, length) -> None:
    address = "a" * length
    result, out_path = patch_file(str(gg_binary(LONG_HOSTNAMES_PAYLOAD)), address)
    assert result.ascii_replacements == 1
    assert result.utf16_replacements == 1
    with open(out_path, "rb") as f:
        written = f.read()
    assert len(written) == len(LONG_HOSTNAMES_PAYLOAD)
    assert address.encode("ascii") + b"\x00" * (21 - length) in written


@pytest.mark.parametrize("length", [17, 20, 21])
def test_cli_long_address_fits_long_hostnames(gg_binary, capsys, length) -> None:
    path = gg_binary(LONG_HOSTNAMES_PAYLOAD)
    assert main([str(path), "a" * length]) == 0
    assert (path.parent / "gg_patched.exe").exists()
    assert capsys.readouterr().err == ""


def test_address_longer_than_hostname_in_file(gg_binary) -> None:
    # both hostnames in GG_PAYLOAD are 19 characters
    path = gg_binary(GG_PAYLOAD)
    patcher = GGPatcher(str(path), "gg.my-own-server.net")

    with pytest.raises(AddressTooLongError) as excinfo:
        patcher.patch_all()
    assert excinfo.value.limit == 19
    assert excinfo.value.length == 20
    assert "appmsg.gadu-gadu.pl" in str(excinfo.value)
    assert patcher.data is None
    with pytest.raises(RuntimeError):
        patcher.save()
    assert path.read_bytes() == GG_PAYLOAD


def test_cli_address_longer_than_hostname_in_file(gg_binary, capsys) -> None:
    path = gg_binary(GG_PAYLOAD)
    assert main([str(path), "gg.my-own-server.net"]) == 1
    assert "appmsg.gadu-gadu.pl" in capsys.readouterr().err
    assert not (path.parent / "gg_patched.exe").exists()


@pytest.mark.parametrize("address", ["gg.łódź.pl", "gg example.pl", "gg.example.pl\x7f"])
def test_invalid_address_rejected_before_core(gg_binary, monkeypatch, address) -> None:
    def unexpected_call(data, new_address):
        raise AssertionError("core must not run")

    monkeypatch.setattr(gg_patcher, "patch_binary", unexpected_call)
    patcher = GGPatcher(str(gg_binary(GG_PAYLOAD)), address)

    with pytest.raises(InvalidAddressError):
        patcher.patch_all()
    assert patcher.data is None


def test_cli_rejects_non_ascii_address(gg_binary, capsys) -> None:
    path = gg_binary(GG_PAYLOAD)
    assert main([str(path), "gg.łódź.pl"]) == 1
    assert "ASCII" in capsys.readouterr().err
    assert not (path.parent / "gg_patched.exe").exists()
