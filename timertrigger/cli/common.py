"""Shared CLI helpers for the timer trigger service."""
from __future__ import annotations

import argparse
from argparse import Namespace
from typing import List

from ..config import ConfigLayer


def _csv_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='timer-trigger',
        description='Timer-triggered HTTP GET runner for tempsense devices.',
        epilog='Command-line values override the config file, which overrides built-in defaults.',
    )
    parser.add_argument('--config', type=str, help='Path to a YAML, JSON or TOML config file.')
    parser.add_argument('--interval-min', type=int, help='Trigger interval in minutes.')
    parser.add_argument('--run-for', type=str, help='Total runtime duration, e.g. 30m, 2h, 1d.')
    parser.add_argument('--mode', type=int, help='Mode 1-4.')
    parser.add_argument('--base-url', type=str, help='Base URL of the device API.')
    parser.add_argument('--epc-list', type=_csv_list, help='Comma-separated EPC list.')
    parser.add_argument('--single-epc', type=str, help='Single EPC for mode 1.')
    parser.add_argument('--single-epc-index', type=int, help='Index into --epc-list used by mode 1.')
    parser.add_argument('--device-id', type=int, help='Device ID.')
    parser.add_argument('--device-port', type=int, help='Device port.')
    parser.add_argument('--duration-sec', type=int, help='Measurement duration per request (seconds).')
    parser.add_argument('--qvalue', type=int, help='Q value.')
    parser.add_argument('--rfmode', type=int, help='RF mode.')
    parser.add_argument(
        '--epc-interval-sec', type=int, help='Interval between EPC requests inside a group (mode 2/4, seconds).'
    )
    parser.add_argument('--connect-timeout-sec', type=int, help='HTTP connect timeout (seconds).')
    parser.add_argument('--request-timeout-sec', type=int, help='HTTP request timeout (seconds).')
    parser.add_argument('--shutdown-wait', type=str, help='Shutdown grace period, e.g. 30s.')
    parser.add_argument('--log-dir', type=str, help='Log output directory.')
    parser.add_argument(
        '--health-api-port', type=int, default=0, help='Enable HTTP health API on specified port (0 to disable).'
    )
    parser.add_argument(
        '--health-api-host', type=str, default='127.0.0.1', help='Health API host (default: 127.0.0.1).'
    )
    parser.add_argument(
        '--print-config',
        action='store_true',
        help='Validate and print the resolved configuration as JSON, then exit.',
    )
    return parser


def layer_from_args(args: Namespace) -> ConfigLayer:
    """Return the command-line overrides stored in *args* as a config layer."""

    return ConfigLayer(
        interval_min=getattr(args, 'interval_min', None),
        run_for=getattr(args, 'run_for', None),
        mode=getattr(args, 'mode', None),
        base_url=getattr(args, 'base_url', None),
        epc_list=getattr(args, 'epc_list', None),
        single_epc=getattr(args, 'single_epc', None),
        single_epc_index=getattr(args, 'single_epc_index', None),
        device_id=getattr(args, 'device_id', None),
        device_port=getattr(args, 'device_port', None),
        duration_sec=getattr(args, 'duration_sec', None),
        qvalue=getattr(args, 'qvalue', None),
        rfmode=getattr(args, 'rfmode', None),
        epc_interval_sec=getattr(args, 'epc_interval_sec', None),
        connect_timeout_sec=getattr(args, 'connect_timeout_sec', None),
        request_timeout_sec=getattr(args, 'request_timeout_sec', None),
        shutdown_wait=getattr(args, 'shutdown_wait', None),
        log_dir=getattr(args, 'log_dir', None),
    )
