import math

import pytest

from pyadata import (
    Buffer,
    DecodeError,
    EncodeError,
    ErrorCode,
    GeneratorOptions,
    decode,
    encode,
    encode_into,
    generate_module,
    size_of,
    skip
)
from pyadata.runtime.error import TraceRecord
from pyadata.schema.classifier import Tier
from pyadata.schema.interning import Interning
from pyadata.schema.json_schema import load_schema


def build(document: dict, tier: Tier = Tier.BASELINE, interning: Interning | None = None,
          strict_members: bool = False):
    return generate_module(load_schema(document), GeneratorOptions(tier, interning, strict_members))


def point_schema(namespace: str = 'geo', extra: list | None = None) -> dict:
    members = [
        {'name': 'x', 'type': 'int32', 'fixed': True},
        {'name': 'y', 'type': 'int32', 'fixed': True},
    ]
    return {'namespace': namespace, 'types': [{'name': 'Point', 'members': members + (extra or [])}]}


EVERYTHING = {
    'namespace': 'kitchen',
    'types': [
        {'name': 'Sink', 'members': [
            {'name': 'i8', 'type': 'int8'},
            {'name': 'u8', 'type': 'uint8'},
            {'name': 'i16', 'type': 'int16'},
            {'name': 'u16', 'type': 'uint16'},
            {'name': 'i32', 'type': 'int32'},
            {'name': 'u32', 'type': 'uint32'},
            {'name': 'i64', 'type': 'int64'},
            {'name': 'u64', 'type': 'uint64'},
            {'name': 'fi16', 'type': 'int16', 'fixed': True},
            {'name': 'fu64', 'type': 'uint64', 'fixed': True},
            {'name': 'f32', 'type': 'float32'},
            {'name': 'f64', 'type': 'float64'},
            {'name': 'text', 'type': 'string'},
            {'name': 'words', 'type': 'list', 'params': [{'type': 'string'}]},
            {'name': 'grid', 'type': 'list', 'params': [{'type': 'list', 'params': [{'type': 'int32'}]}]},
            {'name': 'series', 'type': 'map', 'params': [
                {'type': 'string'}, {'type': 'list', 'params': [{'type': 'int64'}]},
            ]},
            {'name': 'weights', 'type': 'map', 'params': [
                {'type': 'uint16', 'fixed': True}, {'type': 'float64'},
            ]},
            {'name': 'tap', 'type': 'Tap'},
            {'name': 'taps', 'type': 'list', 'params': [{'type': 'Tap'}]},
        ]},
        {'name': 'Tap', 'members': [
            {'name': 'hot', 'type': 'uint8'},
            {'name': 'label', 'type': 'string'},
        ]},
    ],
}


def make_sink(module):
    return module.Sink(
        i8=-128, u8=255, i16=-300, u16=65535, i32=-(1 << 31), u32=(1 << 32) - 1,
        i64=-(1 << 63), u64=(1 << 64) - 1, fi16=-2, fu64=1 << 60,
        f32=0.5, f64=-1.25e300, text='héllo wörld',
        words=['a', '', 'ccc'],
        grid=[[1, 2], [], [-3]],
        series={'up': [1, 1 << 40], 'down': [-5]},
        weights={7: 0.1, 65535: math.inf},
        tap=module.Tap(hot=3, label='left'),
        taps=[module.Tap(), module.Tap(hot=200, label='x' * 300)],
    )


# Concrete wire scenarios --------------------------------------------------

def test_point_wire_bytes(tier: Tier) -> None:
    module = build(point_schema(), tier)
    point = module.Point(x=3, y=-4)
    data = encode(point)
    assert data == bytes.fromhex('03 08 03 00 00 00 fc ff ff ff')
    assert size_of(point) == len(data) == 10
    assert decode(module.Point, data) == point


def test_reader_with_fewer_members_skips_the_rest(tier: Tier) -> None:
    full = build(point_schema(), tier)
    x_only = build({'namespace': 'old', 'types': [{'name': 'Point', 'members': [
        {'name': 'x', 'type': 'int32', 'fixed': True},
    ]}]}, tier)
    buf = Buffer(encode(full.Point(x=3, y=-4)))
    assert decode(x_only.Point, buf).x == 3
    assert buf.remaining == 0


def test_empty_map_frame(tier: Tier) -> None:
    module = build({'namespace': 'idx', 'types': [{'name': 'Index', 'members': [
        {'name': 'entries', 'type': 'map', 'params': [{'type': 'string'}, {'type': 'int32'}]},
    ]}]}, tier)
    assert encode(module.Index()) == b'\x00\x00'
    assert size_of(module.Index()) == 2

    stale = module.Index(entries={'old': 1})
    assert stale.read(Buffer(b'\x00\x00')) == ErrorCode.SUCCESS
    assert stale.entries == {}


def test_list_ceiling(tier: Tier) -> None:
    module = build({'namespace': 'bag', 'types': [{'name': 'Bag', 'members': [
        {'name': 'items', 'type': 'list', 'size': 4, 'params': [{'type': 'uint8'}]},
    ]}]}, tier)

    data = encode(module.Bag(items=[1, 2, 3]))
    assert data == bytes.fromhex('01 04 03 01 02 03')
    assert decode(module.Bag, data).items == [1, 2, 3]

    buf = Buffer()
    buf.write(b'prefix')
    with pytest.raises(EncodeError) as info:
        encode_into(buf, module.Bag(items=[1, 2, 3, 4, 5]))
    assert info.value.code is ErrorCode.SEQUENCE_LENGTH_OVERFLOW
    assert info.value.trace == (TraceRecord('items'),)
    assert buf.get_write_data() == b'prefix'

    with pytest.raises(DecodeError) as info:
        decode(module.Bag, bytes.fromhex('01 06 05 01 02 03 04 05'))
    assert info.value.code is ErrorCode.SEQUENCE_LENGTH_OVERFLOW


def test_unknown_members_are_skipped(tier: Tier) -> None:
    old = build(point_schema('v1'), tier)
    new = build(point_schema('v2', [{'name': 'z', 'type': 'int32'}]), tier)

    data = encode(new.Point(x=1, y=2, z=7)) + b'\xee'
    buf = Buffer(data)
    point = decode(old.Point, buf)
    assert (point.x, point.y) == (1, 2)
    assert buf.read_length == len(data) - 1

    upgraded = decode(new.Point, encode(old.Point(x=5, y=6)))
    assert (upgraded.x, upgraded.y, upgraded.z) == (5, 6, 0)


def test_strict_members_refuse_unknown_bits(tier: Tier) -> None:
    strict = build(point_schema('v1'), tier, strict_members=True)
    new = build(point_schema('v2', [{'name': 'z', 'type': 'int32'}]), tier)
    with pytest.raises(DecodeError) as info:
        decode(strict.Point, encode(new.Point(z=1)))
    assert info.value.code is ErrorCode.UNDEFINED_MEMBER
    assert str(info.value) == 'undefined_member'
    assert decode(strict.Point, encode(strict.Point(x=1))).x == 1


def test_deleted_members(tier: Tier) -> None:
    v1 = build({'namespace': 'rec', 'types': [{'name': 'Record', 'members': [
        {'name': 'a', 'type': 'int32'},
        {'name': 'b', 'type': 'string'},
        {'name': 'c', 'type': 'int32'},
    ]}]}, tier)
    v2 = build({'namespace': 'rec', 'types': [{'name': 'Record', 'members': [
        {'name': 'a', 'type': 'int32'},
        {'name': 'b', 'type': 'string', 'deleted': True},
        {'name': 'c', 'type': 'int32'},
    ]}]}, tier)

    old_data = encode(v1.Record(a=1, b='hi', c=2))
    assert old_data == bytes.fromhex('07 05 01 02 68 69 02')
    record = decode(v2.Record, old_data)
    assert (record.a, record.c) == (1, 2)
    assert not hasattr(record, 'b')
    assert v2.Record.__adata_members__ == ('a', 'b', 'c')

    new_data = encode(v2.Record(a=1, c=2))
    assert new_data == bytes.fromhex('05 02 01 02')
    assert decode(v1.Record, new_data).b == ''
    assert skip(v2.Record, old_data) == len(old_data)


# Round trips --------------------------------------------------------------

def test_round_trip_every_kind(tier: Tier, interning: Interning) -> None:
    module = build(EVERYTHING, tier, interning)
    sink = make_sink(module)
    data = encode(sink)
    assert size_of(sink) == len(data)
    assert skip(module.Sink, data) == len(data)
    assert decode(module.Sink, data) == sink


def test_defaults_round_trip(tier: Tier) -> None:
    module = build(EVERYTHING, tier)
    data = encode(module.Sink())
    assert decode(module.Sink, data) == module.Sink()


def test_tiers_and_interning_produce_identical_bytes() -> None:
    encodings = set()
    for tier in Tier:
        for interning in Interning:
            module = build(EVERYTHING, tier, interning)
            encodings.add(encode(make_sink(module)))
    assert len(encodings) == 1


def test_map_order_does_not_affect_decoded_value(tier: Tier) -> None:
    module = build(EVERYTHING, tier)
    first = module.Sink(series={'a': [1], 'b': [2]})
    second = module.Sink(series={'b': [2], 'a': [1]})
    assert decode(module.Sink, encode(first)) == decode(module.Sink, encode(second))


def test_recursive_type_through_list(tier: Tier) -> None:
    module = build({'namespace': 'forest', 'types': [{'name': 'Tree', 'members': [
        {'name': 'value', 'type': 'int32'},
        {'name': 'children', 'type': 'list', 'params': [{'type': 'Tree'}]},
    ]}]}, tier)
    Tree = module.Tree
    tree = Tree(1, [Tree(2), Tree(3, [Tree(4)])])
    assert decode(Tree, encode(tree)) == tree


def test_included_types(tier: Tier) -> None:
    geo = build(point_schema(), tier)
    shapes = build({
        'namespace': 'shapes',
        'includes': [point_schema()],
        'types': [{'name': 'Line', 'members': [
            {'name': 'start', 'type': 'geo.Point'},
            {'name': 'end', 'type': 'geo.Point'},
            {'name': 'via', 'type': 'list', 'params': [{'type': 'geo.Point'}]},
        ]}],
    }, tier)
    line = shapes.Line(geo.Point(0, 1), geo.Point(2, 3), [geo.Point(-1, -1)])
    assert decode(shapes.Line, encode(line)) == line


def test_wide_presence_tag(tier: Tier) -> None:
    members = [{'name': f'f{i}', 'type': 'int8'} for i in range(60)]
    members.append({'name': 'tail', 'type': 'list', 'params': [{'type': 'uint8'}]})
    module = build({'namespace': 'wide', 'types': [{'name': 'Wide', 'members': members}]}, tier)

    wide = module.Wide(f59=-5, f53=9, tail=[1, 2])
    data = encode(wide)
    assert data[:9] == b'\x87' + ((1 << 61) - 1).to_bytes(8, 'little')
    assert decode(module.Wide, data) == wide

    empty_tail = encode(module.Wide())
    assert empty_tail[:9] == b'\x87' + ((1 << 60) - 1).to_bytes(8, 'little')


def test_scalars_are_always_present(tier: Tier) -> None:
    old = build(point_schema('v1', [{'name': 'tags', 'type': 'list', 'params': [{'type': 'string'}]}]), tier)
    data = encode(old.Point())
    assert data[0] == 0b011


# Errors -------------------------------------------------------------------

NESTED = {
    'namespace': 'errs',
    'types': [
        {'name': 'Outer', 'members': [
            {'name': 'inner', 'type': 'Inner'},
            {'name': 'name', 'type': 'string', 'size': 3},
        ]},
        {'name': 'Inner', 'members': [
            {'name': 'values', 'type': 'list', 'params': [{'type': 'uint8'}]},
        ]},
    ],
}


def test_encode_error_trace(tier: Tier, interning: Interning) -> None:
    module = build(NESTED, tier, interning)
    with pytest.raises(EncodeError) as info:
        encode(module.Outer(inner=module.Inner(values=[1, 300])))
    assert info.value.code is ErrorCode.VALUE_TOO_LARGE
    assert info.value.trace == (TraceRecord('values', 2), TraceRecord('inner'))
    assert str(info.value) == 'value_too_large at inner.values[2]'


@pytest.mark.parametrize('kwargs, code', [
    ({'name': 'abcd'}, ErrorCode.SEQUENCE_LENGTH_OVERFLOW),
    ({'inner': {'values': [-1]}}, ErrorCode.NEGATIVE_ASSIGN_TO_UNSIGNED),
])
def test_encode_error_codes(kwargs: dict, code: ErrorCode) -> None:
    module = build(NESTED)
    if 'inner' in kwargs:
        kwargs = {'inner': module.Inner(**kwargs['inner'])}
    with pytest.raises(EncodeError) as info:
        encode(module.Outer(**kwargs))
    assert info.value.code is code


def test_truncated_input(tier: Tier) -> None:
    module = build(point_schema(), tier)
    data = encode(module.Point(x=1, y=2))
    with pytest.raises(DecodeError) as info:
        decode(module.Point, data[:-1])
    assert info.value.code is ErrorCode.DECODE_TRUNCATED
    assert info.value.trace == (TraceRecord('y'),)

    with pytest.raises(DecodeError):
        skip(module.Point, data[:3])
    with pytest.raises(DecodeError):
        decode(module.Point, b'')


def test_truncated_unknown_tail(tier: Tier) -> None:
    module = build(point_schema(), tier)
    data = bytearray(encode(module.Point(x=1, y=2)))
    data[1] = 12
    with pytest.raises(DecodeError) as info:
        decode(module.Point, bytes(data))
    assert info.value.code is ErrorCode.DECODE_TRUNCATED
    assert info.value.trace == ()


def test_decode_from_memoryview_slice(tier: Tier) -> None:
    module = build(point_schema(), tier)
    data = b'\x00\x00' + encode(module.Point(x=7, y=8))
    assert decode(module.Point, memoryview(data)[2:]) == module.Point(7, 8)


def test_encode_into_appends() -> None:
    module = build(point_schema())
    buf = Buffer()
    first = encode_into(buf, module.Point(x=1))
    second = encode_into(buf, module.Point(y=1))
    assert first == second == 10

    buf.set_read_data(buf.get_write_data())
    assert decode(module.Point, buf) == module.Point(x=1)
    assert decode(module.Point, buf) == module.Point(y=1)
    assert buf.remaining == 0


def test_map_ceiling(tier: Tier) -> None:
    module = build({'namespace': 'lookup_table', 'types': [{'name': 'Table', 'members': [
        {'name': 'entries', 'type': 'map', 'size': 2, 'params': [{'type': 'string'}, {'type': 'uint8'}]},
    ]}]}, tier)

    table = module.Table(entries={'a': 1, 'b': 2})
    assert decode(module.Table, encode(table)) == table

    buf = Buffer()
    with pytest.raises(EncodeError) as info:
        encode_into(buf, module.Table(entries={'a': 1, 'b': 2, 'c': 3}))
    assert info.value.code is ErrorCode.SEQUENCE_LENGTH_OVERFLOW
    assert info.value.trace == (TraceRecord('entries'),)
    assert buf.write_length == 0

    for reader in (decode, skip):
        with pytest.raises(DecodeError) as info:
            reader(module.Table, bytes.fromhex('01 01 03'))
        assert info.value.code is ErrorCode.SEQUENCE_LENGTH_OVERFLOW


def test_deleted_nested_members(tier: Tier) -> None:
    part = {'name': 'Part', 'members': [
        {'name': 'id', 'type': 'uint16'},
        {'name': 'name', 'type': 'string'},
    ]}

    def holder(deleted: bool) -> dict:
        return {'namespace': 'hold', 'types': [{'name': 'Holder', 'members': [
            {'name': 'parts', 'type': 'list', 'params': [{'type': 'Part'}], 'deleted': deleted},
            {'name': 'main', 'type': 'Part', 'deleted': deleted},
            {'name': 'keep', 'type': 'int32'},
        ]}, part]}

    v1 = build(holder(False), tier)
    v2 = build(holder(True), tier)

    data = encode(v1.Holder(
        parts=[v1.Part(1, 'a'), v1.Part(2, 'bb')],
        main=v1.Part(3, 'c'),
        keep=9,
    ))
    buf = Buffer(data)
    record = decode(v2.Holder, buf)
    assert record.keep == 9
    assert buf.remaining == 0
    assert not hasattr(record, 'parts')
    assert skip(v2.Holder, data) == len(data)

    assert decode(v1.Holder, encode(v2.Holder(keep=4))) == v1.Holder(keep=4)
