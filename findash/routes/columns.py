"""
Column Registry Routes

- /api/columns [GET]: registered report columns in display order.
- /api/columns/<key> [PUT]: rename or reorder a column (staff).
"""

from flask import Blueprint, jsonify

from ..models import db, ColumnRegistry
from ..utils.auth_utils import token_required, roles_required
from ..utils.security import request_json
from ..utils.validators import sanitize_input

columns_bp = Blueprint('columns', __name__)


@columns_bp.route('', methods=['GET'])
@token_required
def list_columns():
    return jsonify([column.to_dict() for column in ColumnRegistry.ordered()])


@columns_bp.route('/<key>', methods=['PUT'])
@token_required
@roles_required('admin', 'employee')
def update_column(key):
    column = db.session.get(ColumnRegistry, key)
    if not column:
        return jsonify({'error': 'Column not found'}), 404

    data = request_json()
    label = sanitize_input(data.get('label'), 255)
    if label:
        column.label = label

    display_order = data.get('display_order')
    if display_order is not None:
        try:
            column.display_order = int(display_order)
        except (TypeError, ValueError):
            return jsonify({'error': 'display_order must be an integer'}), 400

    db.session.commit()
    return jsonify(column.to_dict())
