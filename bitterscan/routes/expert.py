# Expert Module Routes
from flask import Blueprint, request, current_app
from flask_login import current_user
from bitterscan.models import (
    db, ValidationHistory, DiseaseInfo, BILINGUAL_FIELDS, EDITABLE_FIELDS, find_scan_by_uuid
)
from bitterscan.utils.auth import (
    json_error, json_response, roles_required, service_credentials_required
)
from bitterscan.utils.scans import (
    collect_scans, collect_validation_history, record_validation,
    revert_validation, is_uuid, ValidationError
)
from bitterscan.utils.timestamps import utcnow, same_instant

expert_bp = Blueprint('expert', __name__)

EXPERT_OR_ADMIN = 'Expert or Admin access required'
NO_CACHE = 'no-store, no-cache, must-revalidate'

# ==================== SCANS ====================

@expert_bp.route('/scans')
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def list_scans():
    current_app.logger.info('[/api/scans] Access granted: %s role: %s', current_user.email, current_user.role)
    try:
        scans = collect_scans()
        history = collect_validation_history(scans)
    except Exception as e:
        current_app.logger.exception('[/api/scans] Unexpected error')
        return json_error(f'Failed to fetch scans: {e}', 500, NO_CACHE)

    max_age = current_app.config.get('SCANS_CACHE_MAX_AGE', 30)
    return json_response({
        'scans': scans,
        'validationHistory': history,
        'count': len(scans),
        'validationCount': len(history),
    }, cache_control=f'private, max-age={max_age}')

# ==================== VALIDATION ====================

@expert_bp.route('/scans/<scan_uuid>/validate', methods=['POST'])
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def validate_scan(scan_uuid):
    if not is_uuid(scan_uuid):
        return json_error('Invalid scan UUID. Cannot create validation history.', 400)

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('Invalid JSON in request body', 400)

    scan = find_scan_by_uuid(scan_uuid)
    if scan is None:
        return json_error('Scan not found', 404)

    try:
        record = record_validation(
            scan,
            current_user.profile,
            body.get('action'),
            correction=body.get('correction'),
            comment=body.get('comment'),
        )
    except ValidationError as e:
        return json_error(e.message, e.status)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('[/api/scans/validate] Failed to record validation for %s', scan_uuid)
        return json_error(f'Failed to record validation: {e}', 500)

    message = 'Scan confirmed.' if record.status == 'Validated' else 'Scan corrected.'
    return json_response({
        'success': True,
        'message': message,
        'validation': record.to_dict(),
        'scan': scan.to_dict(),
    }, 201)


@expert_bp.route('/validations/<int:validation_id>', methods=['DELETE'])
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def delete_validation(validation_id):
    record = db.session.get(ValidationHistory, validation_id)
    if record is None:
        return json_error('Validation record not found', 404)

    try:
        scan = revert_validation(record)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('[/api/validations] Delete failed for %s', validation_id)
        return json_error(f'Failed to delete validation record: {e}', 500)

    return json_response({
        'success': True,
        'message': 'Validation record deleted successfully',
        'scan': scan.to_dict() if scan else None,
    })

# ==================== DISEASE INFORMATION ====================

@expert_bp.route('/disease-info')
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def list_disease_info():
    diseases = DiseaseInfo.query.order_by(DiseaseInfo.disease_name.asc()).all()
    return json_response(
        {'diseases': [disease.to_dict() for disease in diseases], 'count': len(diseases)},
        cache_control='private, max-age=0'
    )


def _normalize(value):
    return (value or '').strip()


@expert_bp.route('/disease-info/<disease_id>', methods=['PUT'])
@service_credentials_required
@roles_required('expert', 'admin', message=EXPERT_OR_ADMIN)
def update_disease_info(disease_id):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('Invalid JSON in request body', 400)

    disease = db.session.get(DiseaseInfo, disease_id)
    if disease is None:
        return json_error('Disease record not found. It may have been deleted.', 404)

    # Optimistic concurrency: the caller must have seen the current version
    if not body.get('overwrite'):
        expected = body.get('expectedUpdatedAt')
        if not same_instant(expected, disease.updated_at):
            return json_response({
                'error': 'This record was changed by someone else since you opened it.',
                'conflict': True,
                'current': disease.to_dict(),
            }, 409)

    for field in EDITABLE_FIELDS:
        if field in body and body[field] is not None and not isinstance(body[field], str):
            return json_error(f'Invalid value for {field}. Expected string.', 400)

    for en_field, bi_field in BILINGUAL_FIELDS:
        en_changed = en_field in body and _normalize(body[en_field]) != _normalize(getattr(disease, en_field))
        if en_field in body:
            setattr(disease, en_field, body[en_field])
        if bi_field in body:
            setattr(disease, bi_field, body[bi_field])
        elif en_changed:
            # The translation is stale once the English text changes
            setattr(disease, bi_field, None)

    disease.last_updated_by = current_user.id
    disease.updated_at = utcnow()
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('[/api/disease-info] Save failed for %s', disease_id)
        return json_error(f'Failed to save {disease.disease_name}: {e}', 500)

    return json_response({
        'success': True,
        'message': f'{disease.disease_name} updated successfully',
        'disease': disease.to_dict(),
    })
