"""
Tests for the INI reader.
"""

import pytest

from emharmonic.libemharmonic.inifile import parse_float_list, read_ini_sections, read_ini_tag_str

CONTENT = """\
:: header comment
[ALPHA]
n=1.5
# inline section comment
k = 0.25

[BETA]
n=2.0
"""


@pytest.fixture
def ini(tmp_path):
    path = tmp_path / "test.ini"
    path.write_text(CONTENT)
    return str(path)


class TestReadTag:

    def test_found(self, ini):
        assert read_ini_tag_str(ini, "ALPHA", "n") == ("1.5", 0)
        assert read_ini_tag_str(ini, "BETA", "n") == ("2.0", 0)

    def test_spaces_around_equals(self, ini):
        assert read_ini_tag_str(ini, "ALPHA", "k") == ("0.25", 0)

    def test_tag_stops_at_next_section(self, ini):
        assert read_ini_tag_str(ini, "ALPHA", "m") == (None, -1)
        assert read_ini_tag_str(ini, "BETA", "k") == (None, -1)

    def test_missing_section(self, ini):
        assert read_ini_tag_str(ini, "GAMMA", "n") == (None, -1)

    def test_missing_file(self, tmp_path):
        assert read_ini_tag_str(str(tmp_path / "none.ini"), "ALPHA", "n") == (None, 1)


class TestReadSections:

    def test_all_sections(self, ini):
        sections = read_ini_sections(ini)
        assert sections == {"ALPHA": {"n": "1.5", "k": "0.25"}, "BETA": {"n": "2.0"}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_ini_sections(str(tmp_path / "none.ini"))

    @pytest.mark.parametrize("text", ["n=1.0\n", "[A]\nnot an entry\n"])
    def test_bad_lines(self, tmp_path, text):
        path = tmp_path / "bad.ini"
        path.write_text(text)
        with pytest.raises(ValueError):
            read_ini_sections(str(path))


def test_parse_float_list():
    assert parse_float_list("1.0, 2, -3e-1,") == [1.0, 2.0, -0.3]
    assert parse_float_list("") == []
    with pytest.raises(ValueError):
        parse_float_list("1.0, abc")
