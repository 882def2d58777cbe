"""
Agent service for public agent profiles and the signed-in agent's own profile.
"""

from typing import Optional
import logging

from app.schemas.agent import Agent, AgentDashboardStats, AgentUpdate
from app.services.api_client import MarketplaceAPIClient
from app.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class AgentService:
    """Agent service wrapping the `/api/agents` endpoints."""

    def __init__(self, api: MarketplaceAPIClient):
        self.api = api

    async def get_agent(self, agent_id: str) -> Agent:
        """
        Get a public agent profile.

        Raises:
            NotFoundError: If the agent doesn't exist
        """
        try:
            payload = await self.api.get(f"/api/agents/{agent_id}")
        except NotFoundError:
            raise NotFoundError("Agent", agent_id)
        return Agent.model_validate(payload)

    async def find_agent(self, agent_id: Optional[str]) -> Optional[Agent]:
        """Get an agent profile for a listing card; a missing agent yields None."""
        if not agent_id:
            return None
        try:
            return await self.get_agent(agent_id)
        except NotFoundError:
            logger.info(f"Listing agent not found: {agent_id}")
            return None

    async def get_me(self, token: str) -> Agent:
        payload = await self.api.get("/api/agents/me", token=token)
        return Agent.model_validate(payload)

    async def update_me(self, update: AgentUpdate, token: str) -> Agent:
        """
        Update the signed-in agent's profile.

        Args:
            update: Changed fields; unset fields are not sent
            token: Agent bearer token

        Returns:
            Updated profile
        """
        payload = await self.api.put(
            "/api/agents/me",
            token=token,
            json=update.model_dump(exclude_none=True)
        )
        return Agent.model_validate(payload) if payload else await self.get_me(token)

    async def get_dashboard_stats(self, token: str) -> AgentDashboardStats:
        payload = await self.api.get("/api/agents/dashboard/stats", token=token)
        return AgentDashboardStats.model_validate(payload or {})
