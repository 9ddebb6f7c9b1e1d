"""Request/response helpers shared by the API blueprints."""
from flask import current_app, jsonify, request

from ceasa.exceptions import ValidationError


def json_payload() -> dict:
    """JSON object body of the request ({} when empty)."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Corpo da requisição deve ser um objeto JSON')
    return payload


def page_args():
    """page/limit query arguments (defaults from config)."""
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config.get('PAGE_SIZE_DEFAULT', 20), type=int)
    return page, limit


def success(data=None, status: int = 200, pagination: dict = None, message: str = None):
    """Standard {success, data[, pagination][, message]} envelope."""
    body = {'success': True, 'data': data}
    if pagination is not None:
        body['pagination'] = pagination
    if message:
        body['message'] = message
    return jsonify(body), status


def listing(result: dict):
    """Envelope for a service listing ({'data', 'pagination'})."""
    return success(result['data'], pagination=result['pagination'])
