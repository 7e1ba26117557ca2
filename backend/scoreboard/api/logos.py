from flask import Blueprint, jsonify, request, current_app, send_from_directory
from flask_login import login_required
from scoreboard.services.logos import LogoStore
from scoreboard.services.match.errors import UploadFailure
import uuid


logos = Blueprint('logos', __name__)


def _store():
    return LogoStore.from_config(current_app.config)


@logos.route('/api/logos', methods=['POST'])
@login_required
def upload_logo():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({'error': 'file is required'}), 400
    ext = upload.filename.rsplit('.', 1)[-1].lower() if '.' in upload.filename else ''
    store = _store()
    try:
        ref = store.upload(f"{uuid.uuid4().hex}.{ext}", upload.read())
    except UploadFailure as exc:
        current_app.logger.warning(f"[upload-failed] {upload.filename}: {exc}")
        return jsonify({'error': str(exc)}), 400
    return jsonify({'ref': ref, 'url': store.public_url(ref)}), 201


@logos.route('/api/logos', methods=['GET'])
@login_required
def list_logos():
    store = _store()
    return jsonify({'logos': [store.public_url(ref) for ref in store.list()]})


@logos.route('/logos/<path:ref>', methods=['GET'])
def serve_logo(ref):
    return send_from_directory(current_app.config['LOGO_UPLOAD_FOLDER'], ref)
