# certanchor/routes/issue.py
# Issuance side: stamps an uploaded certificate with its QR code. Persisting the
# result (storage upload, registry write, chain transaction) happens elsewhere.

import io
import os
from flask import Blueprint, request, jsonify, current_app, send_file, url_for, abort

from certanchor.routes.verify import allowed_file
from certanchor.services import composer_service, hash_service

issue_bp = Blueprint("issue_bp", __name__, url_prefix='/issue')


@issue_bp.route("/compose", methods=["POST"])
def compose_certificate():
    if 'file' not in request.files:
        return jsonify(error="No file part in the request"), 400
    file = request.files['file']
    if file.filename == '' or not allowed_file(file.filename):
        return jsonify(error="No file selected or file type not allowed"), 400

    cert_id = (request.form.get('certificate_id') or '').strip()
    if not cert_id:
        return jsonify(error="A certificate ID is required."), 400

    is_image = os.path.splitext(file.filename)[1].lower() != '.pdf'
    composed = composer_service.compose(file.read(), is_image=is_image, identifier=cert_id)

    current_app.logger.info(f"Issued stamped certificate '{cert_id}' from '{file.filename}'")
    response = send_file(
        io.BytesIO(composed.data),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"certificate-{cert_id}.pdf",
    )
    response.headers['X-View-Handle'] = composed.view_handle
    response.headers['X-View-URL'] = url_for('issue_bp.view_document', handle=composed.view_handle)
    response.headers['X-Document-SHA256'] = hash_service.sha256_of_bytes(composed.data)
    return response


@issue_bp.route("/view/<string:handle>", methods=["GET"])
def view_document(handle):
    data = composer_service.default_views.get(handle)
    if data is None:
        abort(404)
    return send_file(io.BytesIO(data), mimetype='application/pdf')


@issue_bp.route("/view/<string:handle>", methods=["DELETE"])
def release_document(handle):
    released = composer_service.default_views.release(handle)
    return jsonify(released=released)
