"""
Lua scripts for atomic Redis operations on orders.
"""
from typing import Dict, Sequence

# Script to insert an order, claiming its human-readable identifier
CREATE_ORDER_SCRIPT = """
local ref_key = KEYS[1]
local order_key = KEYS[2]
local index_key = KEYS[3]
local sequence_key = KEYS[4]
local record_id = ARGV[1]

-- Claim the order identifier; fails if another order holds it
if redis.call('SETNX', ref_key, record_id) == 0 then
    return 0
end

-- Remaining arguments are field/value pairs of the order document
for i = 2, #ARGV, 2 do
    redis.call('HSET', order_key, ARGV[i], ARGV[i + 1])
end

-- Insertion sequence orders the index, even for orders created in the same instant
local sequence = redis.call('INCR', sequence_key)
redis.call('ZADD', index_key, sequence, record_id)
return 1
"""

# Script to change an order status
SET_STATUS_SCRIPT = """
local order_key = KEYS[1]
local new_status = ARGV[1]
local updated_at = ARGV[2]
local enforce = ARGV[3]

local current = redis.call('HGET', order_key, 'status')
if not current then
    return 0
end

-- When enforcing, remaining arguments list the statuses allowed to move to new_status
if enforce == '1' then
    local allowed = false
    for i = 4, #ARGV do
        if ARGV[i] == current then
            allowed = true
        end
    end
    if not allowed then
        return -1
    end
end

redis.call('HSET', order_key, 'status', new_status)
redis.call('HSET', order_key, 'updatedAt', updated_at)
return 1
"""

# Result codes shared by the scripts
OK = 1
MISSING = 0
REJECTED = -1


class AtomicScripts:
    """Container for order Lua scripts"""

    def __init__(self, redis_wrapper):
        """
        Initialize with RedisClient wrapper (not raw redis.Redis client)
        This ensures we use the wrapper's retry logic and error handling
        """
        self.redis_wrapper = redis_wrapper

    def create_order(
        self,
        ref_key: str,
        order_key: str,
        index_key: str,
        sequence_key: str,
        record_id: str,
        fields: Dict[str, str]
    ) -> int:
        """Execute create order script"""
        args = [record_id]
        for name, value in fields.items():
            args.extend([name, value])
        return int(self.redis_wrapper.eval(
            CREATE_ORDER_SCRIPT,
            4,
            ref_key,
            order_key,
            index_key,
            sequence_key,
            *args
        ))

    def set_status(
        self,
        order_key: str,
        status: str,
        updated_at: str,
        allowed_from: Sequence[str] = ()
    ) -> int:
        """
        Execute set status script.

        An empty allowed_from means any current status may change to status.
        """
        enforce = "1" if allowed_from else "0"
        return int(self.redis_wrapper.eval(
            SET_STATUS_SCRIPT,
            1,
            order_key,
            status,
            updated_at,
            enforce,
            *allowed_from
        ))
