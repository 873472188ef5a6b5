"""
HTTP Client for Autonomy agents
Lets an agent process ask the Autonomy API for payment approval before
spending, and pay for HTTP 402 (Payment Required) responses automatically.
"""

import logging
from decimal import Decimal
from typing import Dict, Any, List, Optional
from urllib.parse import urlparse

import requests
from pydantic import BaseModel, Field

from autonomy.config import Settings
from autonomy.errors import AutonomyAPIError, PaymentRejectedError
from autonomy.models import service_matches
from autonomy.money import AmountLike, to_amount, to_limit


logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_AMOUNT = Decimal("0.01")


class PaymentResult(BaseModel):
    """Answer to a payment check or payment request."""

    approved: bool
    reason: str
    transaction_id: Optional[str] = None
    tx_hash: Optional[str] = None


class PolicyInfo(BaseModel):
    """An agent's limits and how much headroom it has left today."""

    daily_limit: Decimal
    per_tx_limit: Decimal
    spent_today: Decimal
    remaining_daily: Decimal
    whitelist: List[str] = Field(default_factory=list)


class AutonomyClient:
    """
    Client an agent uses to talk to the Autonomy API.

    Usage Example:
        ```python
        client = AutonomyClient("research-bot", api_url="http://localhost:4000/api")

        check = client.check_payment("api.openai.com", 5)
        if check.approved:
            payment = client.request_payment("api.openai.com", 5,
                                             description="GPT-4 call")
            print(payment.tx_hash)
        ```
    """

    def __init__(
        self,
        agent_id: str,
        api_url: str = "http://localhost:4000/api",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            agent_id: Agent this client acts for
            api_url: Base URL of the Autonomy API, including the /api prefix
            timeout: Request timeout in seconds
            session: Optional requests session (for connection reuse or tests)
        """
        if not agent_id:
            raise ValueError("Agent ID is required")

        self.agent_id = agent_id
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': 'Autonomy-Agent/0.1'
        })

    @classmethod
    def from_settings(cls, agent_id: str, settings: Optional[Settings] = None) -> "AutonomyClient":
        """Build a client from ``Settings`` (``AUTONOMY_API_URL`` etc.)."""
        settings = settings or Settings.from_env()
        return cls(agent_id, api_url=settings.api_url, timeout=settings.request_timeout)

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint path (e.g., '/transactions/simulate')
            data: Request body data (for POST/PATCH)
            params: Query parameters (for GET)

        Returns:
            Response data as dictionary

        Raises:
            AutonomyAPIError: If the API answers with an error status
            TimeoutError: If the request times out
            ConnectionError: If the API cannot be reached
        """
        url = f"{self.api_url}{endpoint}"

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=data,
                params=params,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            try:
                error_data = e.response.json()
                message = error_data.get('error') or error_data.get('message') or str(e)
            except (ValueError, AttributeError):
                message = str(e)
            raise AutonomyAPIError(status_code, message) from e

        except requests.exceptions.Timeout:
            raise TimeoutError(f"Request to {url} timed out")

        except requests.exceptions.ConnectionError:
            raise ConnectionError(f"Failed to connect to {url}. Is the server running?")

    def check_payment(self, service: str, amount: AmountLike) -> PaymentResult:
        """
        Check whether a payment would be approved, without executing it.

        Args:
            service: Service to pay
            amount: Amount to pay

        Returns:
            PaymentResult with the validator's decision and reason
        """
        data = self._make_request('POST', '/transactions/simulate', data={
            'agentId': self.agent_id,
            'service': service,
            'amount': float(to_amount(amount)),
            'type': 'payment',
        })
        validation = data['validation']
        return PaymentResult(approved=validation['approved'], reason=validation['reason'])

    def request_payment(
        self,
        service: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> PaymentResult:
        """
        Request and execute a payment through Autonomy.

        A blocked payment is returned as ``approved=False`` with the policy
        reason; it is not raised.

        Args:
            service: Service to pay
            amount: Amount to pay
            description: Free-form note stored with the task

        Returns:
            PaymentResult with the transaction id and settlement hash when approved
        """
        data = self._make_request('POST', f'/agents/{self.agent_id}/execute', data={
            'type': 'payment',
            'service': service,
            'amount': float(to_amount(amount)),
            'data': {'description': description},
        })

        if data.get('success'):
            return PaymentResult(
                approved=True,
                reason='Payment executed successfully',
                transaction_id=data.get('transactionId'),
                tx_hash=data.get('txHash'),
            )
        return PaymentResult(
            approved=False,
            reason=data.get('error') or 'Payment rejected',
            transaction_id=data.get('transactionId'),
        )

    def get_policy_info(self) -> PolicyInfo:
        """Current limits, today's spend and remaining daily headroom."""
        agent = self._make_request('GET', f'/agents/{self.agent_id}')['agent']
        policy = agent['policy']
        daily_limit = to_limit(policy['dailyLimit'])
        spent_today = to_amount(agent.get('spentToday', 0))
        return PolicyInfo(
            daily_limit=daily_limit,
            per_tx_limit=to_limit(policy['perTxLimit']),
            spent_today=spent_today,
            remaining_daily=max(daily_limit - spent_today, Decimal("0")),
            whitelist=policy.get('whitelist', []),
        )

    def is_service_allowed(self, service: str) -> bool:
        """Check a service against the agent's whitelist using the server's matching rules."""
        return service_matches(service, self.get_policy_info().whitelist)


class PaymentRequiredHandler:
    """
    Wraps HTTP calls so that 402 responses are paid for and retried once.

    The price is read from the ``X-Payment-Required: <amount>;<recipient>``
    header, or from a JSON body ``{"payment": {"amount": ...}}``. The
    service paid is the hostname of the requested URL.

    Usage Example:
        ```python
        handler = PaymentRequiredHandler(AutonomyClient("research-bot"))
        response = handler.get("https://api.example.com/premium-data")
        ```
    """

    def __init__(self, client: AutonomyClient, session: Optional[requests.Session] = None):
        self.client = client
        self.session = session or requests.Session()

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request; on 402, pay through Autonomy and retry with proof headers.

        Raises:
            PaymentRejectedError: If Autonomy blocks the payment
        """
        response = self.session.request(method, url, **kwargs)
        if response.status_code != 402:
            return response

        amount, recipient = self._parse_payment_required(response)
        service = urlparse(url).hostname or url
        logger.info("Payment of %s required by %s (recipient %s)", amount, service, recipient)

        payment = self.client.request_payment(service, amount, description=f"Payment for {url}")
        if not payment.approved:
            raise PaymentRejectedError(payment.reason)

        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Payment-Proof'] = payment.tx_hash or ''
        headers['X-Payment-Transaction'] = payment.transaction_id or ''
        return self.session.request(method, url, headers=headers, **kwargs)

    def get(self, url: str, **kwargs) -> requests.Response:
        return self.request('GET', url, **kwargs)

    def post(self, url: str, **kwargs) -> requests.Response:
        return self.request('POST', url, **kwargs)

    @staticmethod
    def _parse_payment_required(response: requests.Response):
        header = response.headers.get('X-Payment-Required')
        if header:
            amount, _, recipient = header.partition(';')
            return to_amount(amount), recipient.strip() or 'unknown'

        try:
            payment = (response.json() or {}).get('payment') or {}
        except ValueError:
            payment = {}
        amount = payment.get('amount')
        return (
            to_amount(amount) if amount else DEFAULT_PAYMENT_AMOUNT,
            payment.get('recipient') or 'unknown',
        )
