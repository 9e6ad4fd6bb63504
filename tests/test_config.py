from __future__ import annotations

import json

import pytest

from timertrigger.config import (
    DEFAULT_LAYER,
    ConfigError,
    ConfigLayer,
    IndexOutOfRangeError,
    ScheduleStep,
    TriggerConfig,
    UnsupportedModeError,
    load_config_layer,
    merge_layers,
    resolve_config,
    validate_layer,
)


def _valid_layer(**overrides) -> ConfigLayer:
    values = {
        'interval_min': 1,
        'run_for': '1h',
        'mode': 2,
        'epc_list': ('EPC-1', 'EPC-2'),
        'epc_interval_sec': 5,
    }
    values.update(overrides)
    return ConfigLayer(**values)


def test_resolve_config_prefers_explicit_then_file_then_default():
    file_layer = ConfigLayer(
        interval_min=5,
        run_for='2h',
        mode=3,
        epc_list=('A', 'B'),
        device_id=7,
        qvalue=4,
    )
    cli_layer = ConfigLayer(interval_min=10, epc_list=('C',), qvalue=9)

    config = resolve_config(file_layer, cli_layer)

    assert config.interval_min == 10
    assert config.epc_list == ('C',)
    assert config.qvalue == 9
    assert config.run_for == '2h'
    assert config.mode == 3
    assert config.device_id == 7
    assert config.rfmode == 113
    assert config.duration_sec == 60
    assert config.base_url == 'http://localhost:9055'
    assert config.shutdown_wait == '30s'
    assert config.log_dir == 'logs'


def test_merge_layers_skips_unset_and_blank_values():
    merged = merge_layers(
        ConfigLayer(base_url='http://file', single_epc='FILE', epc_list=('A',)),
        ConfigLayer(base_url='   ', single_epc=None, epc_list=()),
    )
    assert merged.base_url == 'http://file'
    assert merged.single_epc == 'FILE'
    assert merged.epc_list == ('A',)


def test_merge_layers_keeps_zero_values():
    merged = merge_layers(DEFAULT_LAYER, ConfigLayer(device_port=3), ConfigLayer(device_port=0))
    assert merged.device_port == 0


def test_merge_layers_does_not_mutate_inputs():
    layer = ConfigLayer(qvalue=1)
    merge_layers(DEFAULT_LAYER, layer, ConfigLayer(qvalue=2))
    assert layer.qvalue == 1
    assert DEFAULT_LAYER.qvalue == 0


def test_trigger_config_derives_seconds():
    config = resolve_config(_valid_layer(interval_min=3, run_for='15m', shutdown_wait='45s'))
    assert config.interval_s == 180.0
    assert config.run_for_s == 900.0
    assert config.epc_interval_s == 5.0
    assert config.intra_group_s == 5.0
    assert config.shutdown_wait_s == 45.0


def test_trigger_config_derives_timings_from_its_own_fields():
    config = TriggerConfig(mode=3, interval_min=2, run_for='1h', base_url='http://device', epc_list=['A'])
    assert config.interval_s == 120.0
    assert config.run_for_s == 3600.0
    assert config.epc_interval_s is None
    assert config.intra_group_s == 120.0
    assert config.shutdown_wait_s == 30.0
    assert config.epc_list == ('A',)


@pytest.mark.parametrize('name', ['interval_s', 'run_for_s', 'epc_interval_s', 'shutdown_wait_s'])
def test_trigger_config_rejects_derived_timings_as_arguments(name):
    with pytest.raises(TypeError):
        TriggerConfig(mode=3, interval_min=1, run_for='1h', base_url='http://device', **{name: 0.05})


def test_single_epc_is_trimmed():
    config = resolve_config(_valid_layer(mode=1, single_epc='  EPC-X  '))
    assert config.single_epc == 'EPC-X'


@pytest.mark.parametrize(
    ('overrides', 'error', 'message'),
    [
        ({'interval_min': 0}, ConfigError, 'interval-min must be > 0'),
        ({'mode': 5}, UnsupportedModeError, 'mode must be between 1 and 4'),
        ({'mode': 1, 'single_epc_index': 2}, IndexOutOfRangeError, 'single-epc-index out of range: 2'),
        ({'mode': 1, 'single_epc_index': -1}, IndexOutOfRangeError, 'single-epc-index out of range: -1'),
        ({'run_for': '10'}, ConfigError, 'run-for'),
        ({'epc_interval_sec': 0}, ConfigError, 'epc-interval-sec must be > 0 for mode 2/4'),
        ({'device_port': -1}, ConfigError, 'devicePort must be >= 0'),
        ({'shutdown_wait': 'soon'}, ConfigError, 'shutdown-wait'),
        ({'connect_timeout_sec': 0}, ConfigError, 'connect-timeout-sec must be > 0'),
        ({'request_timeout_sec': -5}, ConfigError, 'request-timeout-sec must be > 0'),
        ({'mode': 4}, ConfigError, 'mode 4 requires scheduleSteps in config'),
    ],
)
def test_resolve_config_rejects_invalid_values(overrides, error, message):
    with pytest.raises(error, match=message):
        resolve_config(_valid_layer(**overrides))


def test_resolve_config_requires_core_fields():
    with pytest.raises(ConfigError, match='interval-min'):
        resolve_config(ConfigLayer(mode=3, run_for='1h', epc_list=('A',)))
    with pytest.raises(ConfigError, match='mode is required'):
        resolve_config(ConfigLayer(interval_min=1, run_for='1h', epc_list=('A',)))
    with pytest.raises(ConfigError, match='run-for is required'):
        resolve_config(ConfigLayer(interval_min=1, mode=3, epc_list=('A',)))
    with pytest.raises(ConfigError, match='epc-list must not be empty'):
        resolve_config(ConfigLayer(interval_min=1, mode=3, run_for='1h'))
    with pytest.raises(ConfigError, match='base-url is required'):
        validate_layer(ConfigLayer(interval_min=1, mode=3, run_for='1h', epc_list=('A',)))


def test_mode_one_single_epc_skips_index_check():
    config = resolve_config(_valid_layer(mode=1, single_epc='ONLY', single_epc_index=9))
    assert config.single_epc == 'ONLY'


def test_mode_four_uses_schedule_steps_without_epc_list():
    layer = ConfigLayer(
        interval_min=1,
        run_for='1h',
        mode=4,
        epc_interval_sec=2,
        schedule_steps=[{'devicePort': 0, 'epcList': ['A', 'B']}, {'devicePort': 1, 'epcList': 'C'}],
    )
    config = resolve_config(layer)
    assert config.schedule_steps == (
        ScheduleStep(device_port=0, epc_list=('A', 'B')),
        ScheduleStep(device_port=1, epc_list=('C',)),
    )
    assert config.epc_list == ()


def test_schedule_step_errors_name_the_offending_entry():
    with pytest.raises(ConfigError, match=r'scheduleSteps\[1\].devicePort is required'):
        ConfigLayer(schedule_steps=[{'devicePort': 0, 'epcList': ['A']}, {'epcList': ['B']}])
    with pytest.raises(ConfigError, match=r'scheduleSteps\[0\].epcList is required'):
        ConfigLayer(schedule_steps=[{'devicePort': 0, 'epcList': []}])
    with pytest.raises(ConfigError, match=r'scheduleSteps\[0\] is null'):
        ConfigLayer(schedule_steps=[None])
    with pytest.raises(ConfigError, match=r'scheduleSteps\[0\].devicePort must be >= 0'):
        resolve_config(
            ConfigLayer(
                interval_min=1,
                run_for='1h',
                mode=4,
                epc_interval_sec=2,
                schedule_steps=[{'devicePort': -2, 'epcList': ['A']}],
            )
        )


def test_from_mapping_accepts_camel_and_snake_case_keys():
    layer = ConfigLayer.from_mapping(
        {
            'intervalMin': '5',
            'run_for': '2h',
            'epcList': 'A, B ,,C',
            'qValue': 3,
            'rf_mode': 7,
            'singleEpcIndex': 1,
            'baseUrl': 'http://device',
        }
    )
    assert layer.interval_min == 5
    assert layer.run_for == '2h'
    assert layer.epc_list == ('A', 'B', 'C')
    assert layer.qvalue == 3
    assert layer.rfmode == 7
    assert layer.single_epc_index == 1
    assert layer.base_url == 'http://device'


def test_from_mapping_rejects_unknown_keys_and_bad_integers():
    with pytest.raises(ConfigError, match='Unknown configuration key: pollRate'):
        ConfigLayer.from_mapping({'pollRate': 3})
    with pytest.raises(ConfigError, match='intervalMin must be an integer'):
        ConfigLayer.from_mapping({'intervalMin': 'often'})
    with pytest.raises(ConfigError, match='mode must be an integer'):
        ConfigLayer.from_mapping({'mode': True})


def test_load_config_layer_reads_yaml(tmp_path):
    path = tmp_path / 'trigger.yaml'
    path.write_text(
        '\n'.join(
            [
                'intervalMin: 2',
                'runFor: 30m',
                'mode: 4',
                'epcIntervalSec: 3',
                'scheduleSteps:',
                '  - devicePort: 0',
                '    epcList: [A, B]',
                '  - devicePort: 1',
                '    epcList: [C]',
            ]
        ),
        encoding='utf-8',
    )
    layer = load_config_layer(path)
    config = resolve_config(layer)
    assert config.mode == 4
    assert config.interval_min == 2
    assert config.run_for_s == 1800.0
    assert [step.device_port for step in config.schedule_steps] == [0, 1]


def test_load_config_layer_reads_json_and_toml(tmp_path):
    json_path = tmp_path / 'trigger.json'
    json_path.write_text(json.dumps({'mode': 3, 'epcList': ['A']}), encoding='utf-8')
    toml_path = tmp_path / 'trigger.toml'
    toml_path.write_text('mode = 1\nsingleEpc = "EPC-T"\n', encoding='utf-8')

    assert load_config_layer(json_path).epc_list == ('A',)
    toml_layer = load_config_layer(toml_path)
    assert toml_layer.mode == 1
    assert toml_layer.single_epc == 'EPC-T'


def test_load_config_layer_treats_empty_yaml_as_empty_layer(tmp_path):
    path = tmp_path / 'empty.yml'
    path.write_text('', encoding='utf-8')
    assert load_config_layer(path) == ConfigLayer()


def test_load_config_layer_errors(tmp_path):
    with pytest.raises(ConfigError, match='Unsupported configuration format'):
        load_config_layer(tmp_path / 'trigger.ini')
    with pytest.raises(ConfigError, match='Failed to read config'):
        load_config_layer(tmp_path / 'missing.yaml')
    listing = tmp_path / 'list.yaml'
    listing.write_text('- 1\n- 2\n', encoding='utf-8')
    with pytest.raises(ConfigError, match='Expected a mapping'):
        load_config_layer(listing)
    broken = tmp_path / 'broken.json'
    broken.write_text('{"mode": ', encoding='utf-8')
    with pytest.raises(ConfigError, match='Failed to parse config'):
        load_config_layer(broken)


def test_to_dict_is_json_serialisable():
    config = resolve_config(_valid_layer())
    payload = json.loads(json.dumps(config.to_dict()))
    assert payload['mode'] == 2
    assert payload['epcList'] == ['EPC-1', 'EPC-2']
    assert payload['epcIntervalSec'] == 5
    assert payload['baseUrl'] == 'http://localhost:9055'
