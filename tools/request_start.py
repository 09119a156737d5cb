# -- coding: utf-8 --

import argparse
import json

import requests

REQUEST_TIMEOUT_S = 3.0


def main():
	p = argparse.ArgumentParser(description="Ask a running service to start a run")
	p.add_argument('--host', default='127.0.0.1', help='HMI host')
	p.add_argument('--port', type=int, default=8000, help='HMI port')
	p.add_argument('--status', action='store_true', help='Print /status afterwards')
	args = p.parse_args()

	base = f"http://{args.host}:{args.port}"
	r = requests.post(f"{base}/start", timeout=REQUEST_TIMEOUT_S)
	print(f"POST /start -> {r.status_code} {r.json()}")
	if args.status:
		r = requests.get(f"{base}/status", timeout=REQUEST_TIMEOUT_S)
		r.raise_for_status()
		print(json.dumps(r.json(), indent=2))


if __name__ == "__main__":
	main()
