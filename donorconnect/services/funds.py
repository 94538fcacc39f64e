"""
Medical fund requests.

Donors browse and donate anonymously-by-name; hospitals manage their own
requests and record cash received at the desk.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..auth import Role
from ..exceptions import ValidationError
from ..models import FUND_STATUSES, FundRequest
from .base import Service, clean_text, unwrap

FILTERS = ('all', 'urgent', 'almost') + FUND_STATUSES


def matches_filter(request: FundRequest, name: str) -> bool:
    if name == 'all':
        return True
    if name == 'urgent':
        return request.urgency == 'high'
    if name == 'almost':
        return 75 <= request.progress < 100
    return request.status == name


def fund_stats(requests: List[FundRequest]) -> Dict[str, Any]:
    return {
        'total': len(requests),
        'urgent': sum(1 for r in requests if matches_filter(r, 'urgent')),
        'almost': sum(1 for r in requests if matches_filter(r, 'almost')),
        'totalRaised': sum(r.amount_collected for r in requests),
    }


def _positive_amount(amount: Any) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError('Please enter a valid donation amount') from None
    if value <= 0:
        raise ValidationError('Please enter a valid donation amount')
    return value


class FundService(Service):
    role = Role.HOSPITAL

    def list(self, filter: str = 'all') -> List[FundRequest]:
        if filter not in FILTERS:
            raise ValidationError(f"Filter must be one of: {', '.join(FILTERS)}")
        payload = self.client.get('/funds', anonymous=True, action='fetch fund requests')
        requests = [FundRequest.from_dict(r) for r in unwrap(payload, 'fundRequests', []) or []]
        return [r for r in requests if matches_filter(r, filter)]

    def report(self, fund_id: str) -> Dict[str, Any]:
        return self.client.get(f'/funds/{fund_id}/report', anonymous=True, action='load fund report')

    def donate(self, fund_id: str, amount: Any, payment_method: str = 'UPI') -> Dict[str, Any]:
        """Donate as the logged-in user."""
        user = self.session.require(Role.USER)
        value = _positive_amount(amount)
        return self._call('POST', '/funds/donate', role=Role.USER, json={
            'fundRequestId': fund_id,
            'donorName': user.profile.get('name'),
            'donorEmail': user.profile.get('email'),
            'amount': value,
            'paymentMethod': payment_method,
        }, action='process donation')

    def update_status(self, fund_id: str, status: str) -> Dict[str, Any]:
        if status not in FUND_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(FUND_STATUSES)}")
        return self.client.put(f'/funds/{fund_id}/status', json={'status': status}, action='update fund status')

    def verify(self, fund_id: str, document_type: str, document_url: str) -> Dict[str, Any]:
        return self._call('POST', f'/funds/{fund_id}/verify', role=Role.USER, json={
            'documentType': document_type,
            'documentUrl': document_url,
        }, action='verify fund request')

    # -- hospital --------------------------------------------------------------

    def create(self, patient_name: str, patient_id: str, amount: Any, purpose: str, **extra) -> Dict[str, Any]:
        if not (patient_name and patient_id and purpose):
            raise ValidationError('Patient name, patient ID and purpose are required')
        body = {
            'patientName': clean_text(patient_name),
            'patientId': clean_text(patient_id),
            'amountRequired': _positive_amount(amount),
            'purpose': clean_text(purpose),
        }
        body.update(extra)
        return self._call('POST', '/funds', json=body, action='create fund request')

    def my_requests(self) -> List[FundRequest]:
        payload = self._call('GET', '/funds/hospital/my-requests', action='fetch fund requests')
        return [FundRequest.from_dict(r) for r in unwrap(payload, 'fundRequests', []) or []]

    def update(self, fund_id: str, **changes) -> Dict[str, Any]:
        if 'amountRequired' in changes:
            changes['amountRequired'] = _positive_amount(changes['amountRequired'])
        for key in ('patientName', 'patientId', 'purpose'):
            if key in changes:
                changes[key] = clean_text(changes[key])
        return self._call('PUT', f'/funds/{fund_id}', json=changes, action='update fund request')

    def delete(self, fund_id: str) -> Dict[str, Any]:
        return self._call('DELETE', f'/funds/{fund_id}', action='delete fund request')

    def record_cash_donation(
        self,
        fund_id: str,
        amount: Any,
        donor_name: str,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        hospital = self.session.require(self.role)
        if not donor_name:
            raise ValidationError('Donor name is required')
        return self._call('POST', f'/funds/{fund_id}/cash-donation', json={
            'amount': _positive_amount(amount),
            'donorName': clean_text(donor_name),
            'description': clean_text(description) or 'Cash donation received at hospital',
            'receivedBy': hospital.name,
            'receivedAt': datetime.now(timezone.utc).isoformat(),
        }, action='record cash donation')

    stats = staticmethod(fund_stats)
