#!/usr/bin/env python3
"""
Web API for questionflow sessions.

Features:
- Start a session from a posted questionnaire or a bundled sample
- Answer, next, previous and submit transitions over JSON
- Drafts and submitted responses kept in memory per session
- Stateless evaluation of a response map

Run:
    python3 web_questionnaire.py

Then POST to: http://localhost:5001/api/sessions
"""

import logging
import os
import secrets
import threading
from pathlib import Path

from flask import Flask, jsonify, request

from questionflow.config import FlowSettings, configure_logging, load_env_file
from questionflow.errors import QuestionFlowError
from questionflow.flow import FlowController, StepOutcome
from questionflow.logic import evaluate_responses, progress, visible_questions
from questionflow.schemas import DraftSnapshot, Questionnaire, list_samples, load_sample

load_env_file(Path(__file__).resolve().parent / ".env")

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Controllers per session_id
sessions = {}
sessions_lock = threading.Lock()

# Submitted responses and latest drafts per session_id
submissions = {}
drafts = {}


def _settings() -> FlowSettings:
    return app.config.get("QUESTIONFLOW_SETTINGS") or FlowSettings.from_env()


def _questionnaire_from_request(data: dict) -> Questionnaire:
    if data.get("sample"):
        return load_sample(data["sample"])
    definition = data.get("questionnaire", data)
    return Questionnaire.from_dict(definition)


def _get_flow(session_id):
    with sessions_lock:
        return sessions.get(session_id)


def _step_response(flow: FlowController, outcome: StepOutcome):
    payload = flow.to_dict()
    payload["outcome"] = outcome.value
    if outcome == StepOutcome.SUBMIT_FAILED and flow.last_submit_error is not None:
        payload["submit_error"] = str(flow.last_submit_error)
    return jsonify(payload)


@app.route('/api/samples', methods=['GET'])
def samples():
    return jsonify({'samples': list_samples()})


@app.route('/api/sessions', methods=['POST'])
def start_session():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be JSON'}), 400

    session_id = secrets.token_hex(8)

    def on_submit(responses, metadata):
        submissions[session_id] = {
            'responses': {str(k): v for k, v in responses.items()},
            'metadata': metadata.to_dict(),
        }

    def on_save_draft(responses):
        # Runs on the timer thread; only the debounced copy is read here
        visible = visible_questions(questionnaire.questions, questionnaire.conditional_rules, responses)
        drafts[session_id] = DraftSnapshot(
            questionnaire_id=questionnaire.id,
            session_id=session_id,
            responses=dict(responses),
            completion_percentage=progress(visible, responses)['percentage'],
        ).to_dict()

    try:
        questionnaire = _questionnaire_from_request(data)
        flow = FlowController(
            questionnaire,
            on_submit=on_submit,
            on_save_draft=on_save_draft,
            settings=_settings(),
            initial_responses=data.get('responses'),
            session_id=session_id,
        )
    except (QuestionFlowError, ValueError, TypeError) as e:
        return jsonify({'error': f'Invalid questionnaire: {e}'}), 400

    with sessions_lock:
        sessions[session_id] = flow
    logger.info("Started session %s for questionnaire %s", session_id, questionnaire.id)

    return jsonify(flow.to_dict())


@app.route('/api/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    flow = _get_flow(session_id)
    if flow is None:
        return jsonify({'error': 'Invalid session'}), 400
    return jsonify(flow.to_dict())


@app.route('/api/sessions/<session_id>/answer', methods=['POST'])
def answer(session_id):
    flow = _get_flow(session_id)
    if flow is None:
        return jsonify({'error': 'Invalid session'}), 400

    data = request.get_json(silent=True) or {}
    if 'question_id' not in data or 'value' not in data:
        return jsonify({'error': 'question_id and value are required'}), 400

    try:
        accepted = flow.answer(int(data['question_id']), data['value'])
    except (QuestionFlowError, ValueError, TypeError) as e:
        return jsonify({'error': str(e)}), 400

    payload = flow.to_dict()
    payload['accepted'] = accepted
    return jsonify(payload)


@app.route('/api/sessions/<session_id>/next', methods=['POST'])
def next_question(session_id):
    flow = _get_flow(session_id)
    if flow is None:
        return jsonify({'error': 'Invalid session'}), 400
    return _step_response(flow, flow.next())


@app.route('/api/sessions/<session_id>/previous', methods=['POST'])
def previous_question(session_id):
    flow = _get_flow(session_id)
    if flow is None:
        return jsonify({'error': 'Invalid session'}), 400
    return _step_response(flow, flow.previous())


@app.route('/api/sessions/<session_id>/submit', methods=['POST'])
def submit(session_id):
    flow = _get_flow(session_id)
    if flow is None:
        return jsonify({'error': 'Invalid session'}), 400
    return _step_response(flow, flow.submit())


@app.route('/api/sessions/<session_id>/draft', methods=['GET', 'POST'])
def draft(session_id):
    flow = _get_flow(session_id)
    if flow is None:
        return jsonify({'error': 'Invalid session'}), 400

    if request.method == 'POST':
        saved = flow.save_draft()
        return jsonify({'saved': saved, 'draft': drafts.get(session_id)})

    return jsonify({'draft': drafts.get(session_id)})


@app.route('/api/sessions/<session_id>/result', methods=['GET'])
def result(session_id):
    if _get_flow(session_id) is None:
        return jsonify({'error': 'Invalid session'}), 400
    if session_id not in submissions:
        return jsonify({'submitted': False})
    return jsonify({'submitted': True, **submissions[session_id]})


@app.route('/api/evaluate', methods=['POST'])
def evaluate():
    """Evaluate a response map against a questionnaire without a session."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be JSON'}), 400

    try:
        questionnaire = _questionnaire_from_request(data)
        report = evaluate_responses(questionnaire, data.get('responses') or {}, _settings().confidence_scope)
    except (QuestionFlowError, ValueError, TypeError) as e:
        return jsonify({'error': str(e)}), 400

    return jsonify(report)


if __name__ == '__main__':
    settings = FlowSettings.from_env()
    configure_logging(settings.log_level)
    port = int(os.environ.get("PORT", "5001"))

    print(f"""
{'='*60}
QUESTIONFLOW WEB API
{'='*60}
  POST /api/sessions                 start a session
  POST /api/sessions/<id>/answer     record an answer
  POST /api/sessions/<id>/next       validate and advance
  POST /api/sessions/<id>/previous   step back
  POST /api/sessions/<id>/submit     submit responses
  POST /api/evaluate                 stateless evaluation
{'='*60}

Listening on http://localhost:{port}
    """)

    app.run(debug=False, host='0.0.0.0', port=port)
