#!/usr/bin/env python3
"""Simple CLI for debugging the aNode paymaster locally"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Optional

import httpx

from anode.config import settings
from anode.core.paymaster import (
    PaymasterError,
    decode_paymaster_and_data,
    normalize_user_operation,
    paymaster_data_prefix,
    paymaster_signing_hash,
    recover_signer,
    user_operation_hash,
)
from anode.core.paymaster.normalizer import parse_bytes
from anode.services.paymaster import build_paymaster_processor


def load_user_operation(source: str) -> Dict[str, Any]:
    """Read a UserOperation from a JSON file, or stdin when source is '-'"""
    if source == "-":
        payload = json.load(sys.stdin)
    else:
        with open(source, "r", encoding="utf-8") as handle:
            payload = json.load(handle)

    # Accept either a bare operation or a full /process request body
    if isinstance(payload, dict) and isinstance(payload.get("userOperation"), dict):
        return payload["userOperation"]
    return payload


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def cli_hash(source: str, version: Optional[str], paymaster: Optional[str], valid_until: int, valid_after: int):
    """Print the EntryPoint hash and the paymaster signing hash of an operation"""
    processor = build_paymaster_processor(settings)
    policy = processor.resolve_policy(version)
    op = normalize_user_operation(load_user_operation(source), policy)

    print(f"\n🔢 UserOperation Hashes (EntryPoint v{policy.version.value})")
    print("=" * 50)
    print(f"Sender:      {op.sender}")
    print(f"Nonce:       {op.nonce}")
    print(f"EntryPoint:  {policy.entry_point}")
    print(f"Chain ID:    {policy.chain_id}")
    print(f"userOpHash:  0x{user_operation_hash(op, policy).hex()}")

    paymaster = paymaster or settings.paymaster_contract_address
    if not paymaster:
        print("\n⚠️  No paymaster address configured; skipping signing hash")
        return

    prefix = paymaster_data_prefix(paymaster, valid_until, valid_after)
    signing_hash = paymaster_signing_hash(op, prefix, policy.chain_id)
    print(f"Paymaster:   {paymaster}")
    print(f"Validity:    until={valid_until} after={valid_after}")
    print(f"Signing hash: 0x{signing_hash.hex()}")


def cli_process(source: str, version: Optional[str]):
    """Run the engine in-process with the local configuration"""
    processor = build_paymaster_processor(settings)
    result = processor.process(load_user_operation(source), version)

    status = "✅" if result.success else "❌"
    print(f"{status} {result.payment_method.value} ({result.duration_ms}ms)")
    print(f"States: {' -> '.join(state.value for state in result.states)}")
    print_json(result.to_dict())


def cli_decode(blob: str, source: Optional[str], version: Optional[str]):
    """Split a paymasterAndData blob and optionally recover its signer"""
    auth = decode_paymaster_and_data(parse_bytes(blob, "paymasterAndData"))

    print("\n🧩 paymasterAndData")
    print("=" * 50)
    print(f"Paymaster:   {auth.paymaster}")
    print(f"Valid until: {auth.valid_until}")
    print(f"Valid after: {auth.valid_after}")
    print(f"Signature:   0x{auth.signature.hex()}")

    if source is None:
        return

    processor = build_paymaster_processor(settings)
    policy = processor.resolve_policy(version)
    op = normalize_user_operation(load_user_operation(source), policy)
    prefix = paymaster_data_prefix(auth.paymaster, auth.valid_until, auth.valid_after)
    signing_hash = paymaster_signing_hash(op, prefix, policy.chain_id)
    signer = recover_signer(signing_hash, auth.signature)
    print(f"Signing hash: 0x{signing_hash.hex()}")
    print(f"Recovered signer: {signer}")

    context = processor.context
    if context is not None:
        match = "✅ matches" if signer == context.signer_address else "❌ does not match"
        print(f"{match} configured signer {context.signer_address}")


async def cli_remote(source: str, url: str, version: Optional[str]):
    """POST an operation to a running paymaster service"""
    body: Dict[str, Any] = {"userOperation": load_user_operation(source)}
    if version:
        body["entryPointVersion"] = version

    endpoint = f"{url.rstrip('/')}/api/v1/paymaster/process"
    print(f"📡 Sending UserOperation to {endpoint}...")
    async with httpx.AsyncClient() as client:
        response = await client.post(endpoint, json=body, timeout=30)

    data = response.json()
    status = "✅" if data.get("success") else "❌"
    print(f"{status} HTTP {response.status_code} paymentMethod={data.get('paymentMethod')}")
    if data.get("processing"):
        print(f"Processing: {data['processing'].get('totalDuration')} via {data['processing'].get('service')}")
    print_json(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="aNode Paymaster CLI")
    subparsers = parser.add_subparsers(dest="command")

    hash_parser = subparsers.add_parser("hash", help="Print userOpHash and paymaster signing hash")
    hash_parser.add_argument("file", help="UserOperation JSON file ('-' for stdin)")
    hash_parser.add_argument("--version", help="EntryPoint version override (0.6 or 0.7)")
    hash_parser.add_argument("--paymaster", help="Paymaster address (default: configured address)")
    hash_parser.add_argument("--valid-until", type=int, default=0, help="validUntil timestamp (default: 0)")
    hash_parser.add_argument("--valid-after", type=int, default=0, help="validAfter timestamp (default: 0)")

    process_parser = subparsers.add_parser("process", help="Process a UserOperation locally")
    process_parser.add_argument("file", help="UserOperation JSON file ('-' for stdin)")
    process_parser.add_argument("--version", help="EntryPoint version override (0.6 or 0.7)")

    decode_parser = subparsers.add_parser("decode", help="Decode a paymasterAndData blob")
    decode_parser.add_argument("blob", help="0x-prefixed paymasterAndData")
    decode_parser.add_argument("--op", dest="file", help="UserOperation JSON to recover the signer against")
    decode_parser.add_argument("--version", help="EntryPoint version override (0.6 or 0.7)")

    remote_parser = subparsers.add_parser("remote", help="Send a UserOperation to a running service")
    remote_parser.add_argument("file", help="UserOperation JSON file ('-' for stdin)")
    remote_parser.add_argument("--url", default=f"http://{settings.host}:{settings.port}", help="Service base URL")
    remote_parser.add_argument("--version", help="EntryPoint version override (0.6 or 0.7)")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    try:
        if command == "hash":
            cli_hash(args.file, args.version, args.paymaster, args.valid_until, args.valid_after)

        elif command == "process":
            cli_process(args.file, args.version)

        elif command == "decode":
            cli_decode(args.blob, args.file, args.version)

        elif command == "remote":
            await cli_remote(args.file, args.url, args.version)

        else:
            print(f"❌ Unknown command: {command}")
            parser.print_help()

    except PaymasterError as e:
        print(f"❌ {e.code.value}: {e.message}")
        sys.exit(1)
    except (OSError, ValueError, httpx.HTTPError) as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
