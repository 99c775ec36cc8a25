# certanchor/routes/verify.py

import os
from flask import Blueprint, request, jsonify, current_app

from certanchor.models import VerificationResult, VerificationStatus
from certanchor.services import extractor_service
from certanchor.services.resolver_service import VerificationResolver
from certanchor.services.store_service import CertificateStore

ALLOWED_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg'}

verify_bp = Blueprint("verify_bp", __name__, url_prefix='/verify')


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _is_pdf(file_storage):
    extension = os.path.splitext(file_storage.filename)[1].lower()
    return extension == '.pdf' or file_storage.mimetype == 'application/pdf'


def build_resolver():
    """A fresh resolver per request; requests share no verification state."""
    return VerificationResolver(
        store=CertificateStore(),
        chain_client=current_app.extensions.get("chain_client"),
        chain_timeout=current_app.config.get("CHAIN_TIMEOUT"),
        explorer_tx_url=current_app.config.get("EXPLORER_TX_URL"),
    )


def _respond(result: VerificationResult):
    payload = result.to_dict()
    if result.status == VerificationStatus.VALID:
        base_url = current_app.config.get("BASE_VERIFICATION_URL", "").rstrip('/')
        payload["verification_url"] = f"{base_url}/verify/{result.certificate_id}"
    return jsonify(payload)


@verify_bp.route("/upload", methods=["POST"])
def upload_for_verification():
    if 'file' not in request.files:
        return jsonify(error="No file part in the request"), 400
    file = request.files['file']
    if file.filename == '' or not allowed_file(file.filename):
        return jsonify(error="No file selected or file type not allowed"), 400

    data = file.read()
    cert_id = extractor_service.extract_from_document(
        data,
        is_pdf=_is_pdf(file),
        scale=current_app.config.get("PDF_RENDER_SCALE", 4.0),
    )
    if not cert_id:
        current_app.logger.info(f"No QR code found in upload '{file.filename}'")
        result = VerificationResult(
            VerificationStatus.INVALID, "Unknown",
            message="No QR Code Found: the digital scanner could not find a QR code in this document.",
        )
        return _respond(result)

    return _respond(build_resolver().resolve(cert_id))


@verify_bp.route("/manual", methods=["POST"])
def manual_verification():
    payload = request.get_json(silent=True) or request.form
    cert_id = extractor_service.parse_identifier(payload.get("certificate_id"))
    if not cert_id:
        return jsonify(error="A certificate ID is required."), 400
    return _respond(build_resolver().resolve(cert_id))


@verify_bp.route("/<string:cert_id>", methods=["GET"])
def verify_by_link(cert_id):
    return _respond(build_resolver().resolve(cert_id.strip()))
