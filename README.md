# rasdecode

Turns raw x86 machine-check (MCE) register values into readable
messages, and walks the pages of the kernel tracing ring buffer.

## Machine-check decoding

Create an `MceEvent` and fill it with the register values the kernel
reported: `bank`, `status`, `misc`, `mcgstatus`, `ipid`, `synd` and `ip`.
Then pass it to the decoder for the processor that logged it. The
decoders change the event in place. Their text goes into the event's
message fields: `bank_name`, `error_msg`, `mcgstatus_msg`,
`mcistatus_msg`, `mcastatus_msg` and `mc_location`.

`MceEvent.add_message(target, text)` appends text to one of these
fields. A space separates it from any text already there. An unknown
field name raises `ValueError`.

```python
from rasdecode.event import MceEvent
from rasdecode.amd_k8 import parse_amd_k8_event

event = MceEvent(bank=0, status=0x11)
if parse_amd_k8_event(event):
    print(event.bank_name, event.error_msg)
```

Decoders provided:

| Module | Entry point | Processors |
| --- | --- | --- |
| `rasdecode.amd` | `decode_amd_errcode(event)` | AMD architectural error codes |
| `rasdecode.amd_k8` | `parse_amd_k8_event(event)` | AMD K8 |
| `rasdecode.nehalem` | `nehalem_decode_model(event)`, `xeon75xx_decode_model(event)` | Nehalem, Xeon 75xx |
| `rasdecode.dunnington` | `dunnington_decode_model(event)` | Dunnington |
| `rasdecode.ivb` | `ivb_decode_model(event, is_epex)` | Ivy Bridge (`is_epex=True` for EP/EX) |
| `rasdecode.knl` | `knl_decode_model(event)` | Knights Landing |
| `rasdecode.haswell` | `hsw_decode_model(event)` | Haswell |
| `rasdecode.broadwell_de` | `broadwell_de_decode_model(event)` | Broadwell-DE |
| `rasdecode.broadwell_epex` | `broadwell_epex_decode_model(event)` | Broadwell EP/EX |
| `rasdecode.i10nm` | `i10nm_decode_model(cputype, event)` | Ice Lake Xeon, Ice Lake-D, Tremont-D, Sapphire Rapids |

Some decoders need more than the event:

- `decode_amd_errcode` replaces `error_msg` with a severity sentence.
  It does not append to it.
- `parse_amd_k8_event` returns `False` for northbridge GART errors and
  leaves the event alone. Otherwise it returns `True`. For northbridge
  memory errors it also sets `ip` to 0.
- `i10nm_decode_model` takes a member of `rasdecode.i10nm.I10nmCpu` as
  `cputype`. It does nothing for any other value.
  `i10nm_memerr_channel(event)` gives the memory channel of a
  memory-controller error, or `None` when there is none.

`rasdecode.event` holds the register helpers and bit constants:

- `extract(value, start, end)` returns the inclusive bit range.
- `test_prefix(nr, value)` is true when the bits above `nr` equal 1.
- The bit constants include `MCI_STATUS_UC` and `MCG_STATUS_RIPV`.

`rasdecode.fields` holds the table-driven bit decoders:

- The field types `Field` and `NumField`.
- The constructors `sbitfield`, `table_field`, `null_field` and `numfield`.
- `decode_bitfield` and `decode_numfield`, which append to `error_msg`.

## Ring-buffer pages

`rasdecode.kbuffer.KBuffer(long_size, endian)` reads one sub-buffer page
of the kernel tracing ring buffer at a time. By default it takes an
8-byte long and little-endian order (`LongSize.EIGHT`, `Endian.LITTLE`).

```python
from rasdecode.kbuffer import KBuffer, LongSize, Endian

kbuf = KBuffer(LongSize.EIGHT, Endian.LITTLE)
kbuf.load_subbuffer(page_bytes)
record = kbuf.read_event()
while record is not None:
    timestamp, payload = record
    ...
    record = kbuf.next_event()
```

Other members of `KBuffer`:

- `read_at_offset(offset)`
- `set_old_format()`, for pages from 2.6.30 and earlier kernels
- `event_size()`, `curr_size()`, `curr_index()` and `curr_offset()`
- `missed_events()`
- the `timestamp` and `subbuffer_size` properties

A read past the end of the page raises `ValueError`.

`translate_data(swap, data)` locates the payload of a single raw record.
It returns `(offset, length)`, or `None` for padding and time records.

`rasdecode.trace_seq.TraceSeq` is a growable text buffer with these
methods:

- `printf(fmt, *args)`, using `%`-style formatting
- `puts`, `putc`
- `do_printf()`, which writes to standard output
- `destroy()`

After `destroy()`, any use raises `RuntimeError`.

## What it does not do

- It does not decode AMD Scalable MCA (family 17h and later) banks.
- It does not read machine-check events or trace pages from a running
  system.
- It provides no command-line tool, daemon or event storage.

You supply the register values or page bytes. The package only decodes
them.

## Tests

```
pip install -e .[test]
pytest
```