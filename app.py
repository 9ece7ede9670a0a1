# app.py
import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from bill_calc import validate_denominations
from config import Settings, load_settings
from errors import OCRError, TipPoolError
from hours_parser import format_ocr_result, parse_partner_hours
from ocr import OCRService
from split_calc import calculate_distribution
from storage import get_storage
from utils import is_positive_number

logger = logging.getLogger(__name__)


def json_object():
    """Request JSON as a dict: {} when there is no body, None when it is not an object."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    return body if isinstance(body, dict) else None


def create_app(settings: Settings = None, storage=None, ocr=None) -> Flask:
    """
    Build the Flask app. ``storage`` is a storage.Storage and ``ocr`` any
    callable taking image bytes and returning text; both default to what the
    settings describe.
    """
    settings = settings or load_settings()
    storage = storage or get_storage(settings)
    ocr = ocr or OCRService(settings)
    denominations = validate_denominations(settings.denominations)

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.max_upload_bytes

    @app.route('/health')
    def health():
        return 'ok'

    @app.route('/api/ocr', methods=['POST'])
    def process_ocr():
        # expects multipart form-data with an 'image' file
        f = request.files.get('image')
        if f is None:
            logger.info("No image file provided in request")
            return jsonify({'error': 'No image file provided'}), 400

        image_bytes = f.read()
        logger.info("Image received: %s, %d bytes", f.filename, len(image_bytes))

        try:
            text = ocr(image_bytes)
        except OCRError as exc:
            logger.error("OCR failed (%s): %s", exc.kind, exc.message)
            return jsonify({
                'error': exc.message,
                'kind': exc.kind,
                'suggestManualEntry': True,
            }), 500

        result = parse_partner_hours(text)
        logger.info("Found %d partners with hours", len(result.partners))
        return jsonify({
            'extractedText': format_ocr_result(text),
            'partnerHours': [p.to_dict() for p in result.partners],
            'skippedLines': result.skipped,
        })

    @app.route('/api/distributions/calculate', methods=['POST'])
    def calculate():
        body = json_object()
        if body is None:
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        partner_hours = body.get('partnerHours')
        if not isinstance(partner_hours, list) or not partner_hours:
            return jsonify({'error': 'Partner hours data is missing or empty'}), 400
        settle = body.get('settleRemainder', False)
        if not isinstance(settle, bool):
            return jsonify({'error': 'settleRemainder must be true or false'}), 400

        try:
            distribution = calculate_distribution(
                body.get('totalAmount'),
                partner_hours,
                hourly_rate=body.get('hourlyRate'),
                total_hours=body.get('totalHours'),
                denominations=denominations,
                settle=settle,
            )
        except TipPoolError as exc:
            return jsonify({'error': str(exc)}), 400

        return jsonify(distribution.to_dict())

    @app.route('/api/distributions', methods=['POST'])
    def save_distribution():
        body = json_object()
        if body is None:
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        for key in ('totalAmount', 'totalHours', 'hourlyRate'):
            if not is_positive_number(body.get(key)):
                return jsonify({'error': f'{key} must be a positive number'}), 400
        if not isinstance(body.get('partnerData'), list):
            return jsonify({'error': 'partnerData must be a list'}), 400

        record = storage.create_distribution({
            'totalAmount': body['totalAmount'],
            'totalHours': body['totalHours'],
            'hourlyRate': body['hourlyRate'],
            'partnerData': body['partnerData'],
        })
        return jsonify(record.to_dict()), 201

    @app.route('/api/distributions', methods=['GET'])
    def list_distributions():
        return jsonify([d.to_dict() for d in storage.get_distributions()])

    @app.route('/api/partners', methods=['POST'])
    def create_partner():
        body = json_object()
        if body is None:
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        name = body.get('name')
        if not isinstance(name, str) or not name.strip():
            return jsonify({'error': 'Partner name is required'}), 400
        partner = storage.create_partner(name.strip())
        return jsonify(partner.to_dict()), 201

    @app.route('/api/partners', methods=['GET'])
    def list_partners():
        return jsonify([p.to_dict() for p in storage.get_partners()])

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(exc):
        return jsonify({
            'error': f'Image is larger than {settings.max_upload_mb}MB',
            'suggestManualEntry': True,
        }), 413

    @app.errorhandler(Exception)
    def unhandled(exc):
        if isinstance(exc, HTTPException):
            return jsonify({'error': exc.description}), exc.code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({'error': 'Internal server error'}), 500

    return app


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    app.run(host='0.0.0.0', port=settings.port)


if __name__ == '__main__':
    main()
