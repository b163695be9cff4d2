import io
import os

from press.console_capture import capture_piped_output, tail_lines


class FakeTTY(io.StringIO):
    def isatty(self):
        return True


def test_keeps_only_the_last_lines():
    piped = io.StringIO("".join(f"line {i}\n" for i in range(30)))
    assert capture_piped_output(3, piped) == "line 27\nline 28\nline 29"


def test_terminal_stdin_gives_nothing():
    assert capture_piped_output(10, FakeTTY("typed")) == ""


def test_tail_lines_short_input():
    assert tail_lines("a\nb", 10) == "a\nb"


def test_redirected_file_is_read(tmp_path):
    log = tmp_path / "build.log"
    log.write_text("one\ntwo\nthree\n", encoding="utf-8")
    with open(log, encoding="utf-8") as f:
        assert capture_piped_output(2, f) == "two\nthree"


def test_device_stdin_is_not_read():
    with open(os.devnull, encoding="utf-8") as f:
        assert capture_piped_output(10, f) == ""
