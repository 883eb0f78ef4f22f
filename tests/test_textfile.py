from hcibus.core.textfile import get_cached_name, names_file, oui_to_company, textfile_get


def test_textfile_get_case_insensitive(tmp_path):
    f = tmp_path / "names"
    f.write_text("aa:bb:cc:dd:ee:ff Living room speaker\n11:22:33:44:55:66 phone\n")
    assert textfile_get(f, "AA:BB:CC:DD:EE:FF") == "Living room speaker"
    assert textfile_get(f, "11:22:33:44:55:66") == "phone"
    assert textfile_get(f, "00:00:00:00:00:00") is None


def test_missing_file_is_a_miss(tmp_path):
    assert textfile_get(tmp_path / "nope", "key") is None
    assert get_cached_name(str(tmp_path), "00:11:22:33:44:55", "AA:BB:CC:DD:EE:FF") is None


def test_names_file_layout():
    assert names_file("/var/lib/bluetooth", "00:11:22:33:44:55") == "/var/lib/bluetooth/00:11:22:33:44:55/names"


def test_oui_lookup(tmp_path):
    oui = tmp_path / "oui.txt"
    oui.write_text(
        "OUI/MA-L\t\t\tOrganization\n"
        "00-11-22   (hex)\t\tCIMSYS Inc\n"
        "001122     (base 16)\t\tCIMSYS Inc\n"
        "AC-DE-48   (hex)\t\tPrivate\n"
    )
    assert oui_to_company(oui, "00:11:22:33:44:55") == "CIMSYS Inc"
    assert oui_to_company(oui, "ac:de:48:00:00:01") == "Private"
    assert oui_to_company(oui, "FF:FF:FF:00:00:00") is None
    assert oui_to_company(tmp_path / "missing.txt", "00:11:22:33:44:55") is None
