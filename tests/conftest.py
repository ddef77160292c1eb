import itertools
import json
import threading
from collections import deque

import pytest
from flask import Flask, Response, jsonify, request
from werkzeug.serving import make_server

from lambda_runtime_client import RuntimeConfig

PREFIX = '/2018-06-01/runtime'


class FakeRuntimeApi:
    """Flask stand-in for the Runtime API that records every request in order"""

    def __init__(self):
        self.app = Flask(__name__)
        self.queue = deque()
        self.requests = []
        self.report_status = 202
        self.served_headers = []
        self.hold_polls = False
        self.release = threading.Event()
        self.setup_routes()

    def enqueue(self, request_id, event=None, headers=None, body=None):
        all_headers = {'Lambda-Runtime-Deadline-Ms': '9999999999999'}
        if request_id is not None:
            all_headers['Lambda-Runtime-Aws-Request-Id'] = request_id
        all_headers.update(headers or {})
        all_headers = {name: value for name, value in all_headers.items() if value is not None}
        if body is None:
            body = json.dumps(event if event is not None else {})
        self.queue.append((all_headers, body))

    def record(self):
        self.requests.append({
            'method': request.method,
            'path': request.path,
            'headers': dict(request.headers),
            'body': request.get_data(),
        })

    @property
    def paths(self):
        return [r['path'] for r in self.requests]

    def posts(self, suffix):
        return [r for r in self.requests if r['method'] == 'POST' and r['path'].endswith(suffix)]

    def setup_routes(self):
        @self.app.route(f'{PREFIX}/invocation/next', methods=['GET'])
        def next_invocation():
            self.record()
            if not self.queue and self.hold_polls:
                self.release.wait(timeout=30)
            if not self.queue:
                return jsonify({'errorType': 'NoInvocation', 'errorMessage': 'queue empty'}), 500
            headers, body = self.queue.popleft()
            self.served_headers.append(headers)
            return Response(body, status=200, headers=headers, content_type='application/json')

        @self.app.route(f'{PREFIX}/invocation/<request_id>/response', methods=['POST'])
        def invocation_response(request_id):
            self.record()
            return jsonify({'status': 'OK'}), self.report_status

        @self.app.route(f'{PREFIX}/invocation/<request_id>/error', methods=['POST'])
        def invocation_error(request_id):
            self.record()
            return jsonify({'status': 'OK'}), self.report_status

        @self.app.route(f'{PREFIX}/init/error', methods=['POST'])
        def init_error():
            self.record()
            return jsonify({'status': 'OK'}), self.report_status


@pytest.fixture
def runtime_api():
    api = FakeRuntimeApi()
    server = make_server('127.0.0.1', 0, api.app)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    api.address = f'127.0.0.1:{server.server_port}'
    try:
        yield api
    finally:
        api.release.set()
        server.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def config(runtime_api):
    return RuntimeConfig(
        runtime_api=runtime_api.address,
        function_name='echo',
        function_version='$LATEST',
        memory_limit_in_mb='128',
        log_group_name='/aws/lambda/echo',
        log_stream_name='2026/10/17/[$LATEST]0123456789abcdef',
    )


def stop_after(count):
    """should_stop hook that lets the loop poll `count` times"""
    calls = itertools.count()
    return lambda: next(calls) >= count


@pytest.fixture(name='stop_after')
def stop_after_fixture():
    return stop_after
