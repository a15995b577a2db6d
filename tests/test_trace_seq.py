import pytest

from rasdecode.trace_seq import TraceSeq


def test_printf_formats_and_returns_one():
    seq = TraceSeq()
    assert seq.printf("%s=%d", "cpu", 3) == 1
    assert seq.text == "cpu=3"


def test_printf_without_args_handles_percent():
    seq = TraceSeq()
    seq.printf("100%%")
    assert seq.text == "100%"


def test_puts_returns_length_and_appends():
    seq = TraceSeq()
    assert seq.puts("hello") == 5
    assert seq.puts(" world") == 6
    assert seq.text == "hello world"
    assert len(seq) == len(seq.text)


def test_putc_accepts_str_and_int():
    seq = TraceSeq()
    assert seq.putc("a") == 1
    assert seq.putc(ord("b")) == 1
    assert str(seq) == "ab"


@pytest.mark.parametrize("bad", ["", "xy", 256, -1])
def test_putc_rejects_bad_values(bad):
    seq = TraceSeq()
    with pytest.raises(ValueError):
        seq.putc(bad)


def test_large_content_grows():
    seq = TraceSeq()
    chunk = "x" * 1000
    for _ in range(10):
        seq.puts(chunk)
    assert len(seq) == 10 * len(chunk)
    assert seq.text == chunk * 10


def test_use_after_destroy_raises():
    seq = TraceSeq()
    seq.puts("data")
    seq.destroy()
    with pytest.raises(RuntimeError):
        seq.puts("more")
    with pytest.raises(RuntimeError):
        seq.printf("%d", 1)
    with pytest.raises(RuntimeError):
        seq.destroy()


def test_do_printf_writes_stdout(capsys):
    seq = TraceSeq()
    seq.printf("%s:%s", "a", "b")
    seq.putc("\n")
    written = seq.do_printf()
    out = capsys.readouterr().out
    assert out == "a:b\n"
    assert written == len(out)


def test_text_is_stable_across_reads():
    seq = TraceSeq()
    seq.puts("one")
    first = seq.text
    seq.puts("two")
    assert seq.text == first + "two"