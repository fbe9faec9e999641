#!/usr/bin/env python3

import asyncio
import sys
import os

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from roomchat import database
from roomchat.database import create_tables
from roomchat.exceptions import DuplicateUsername
from roomchat.repositories.user_repository import UserRepository
from roomchat.repositories.message_repository import MessageRepository

USERS = ["alice", "bob", "charlie", "diana"]
PASSWORD = "password123"

MESSAGES = [
    ("lobby", "alice", "Hey everyone!"),
    ("lobby", "bob", "Hi Alice, welcome to the lobby"),
    ("lobby", "charlie", "Anyone up for a match tonight?"),
    ("lobby", "diana", "Count me in"),
    ("ranked", "bob", "Queueing ranked in 5"),
    ("ranked", "charlie", "Wait for me"),
]

async def create_test_users():
    async with database.AsyncSessionLocal() as db:
        user_repo = UserRepository(db)
        
        created_users = []
        for username in USERS:
            try:
                user = await user_repo.register(username, PASSWORD)
                print(f"Created user: {user.username} (ID: {user.id})")
            except DuplicateUsername:
                user = await user_repo.get_by_username(username)
                print(f"User {username} exists (ID: {user.id})")
            created_users.append(user)
        
        return created_users

async def create_test_messages():
    async with database.AsyncSessionLocal() as db:
        message_repo = MessageRepository(db)
        
        # Rooms that already have history are left alone so reruns do not duplicate
        skipped_rooms = set()
        for room in sorted({room for room, _, _ in MESSAGES}):
            if await message_repo.recent(room, 1):
                skipped_rooms.add(room)
                print(f"Room {room} already has history, skipping")

        created_messages = []
        for room, author, content in MESSAGES:
            if room in skipped_rooms:
                continue
            message = await message_repo.append(room, author, content)
            created_messages.append(message)
            print(f"Created message from {author} in {room}: '{content[:30]}'")
        
        return created_messages

async def main():
    print("Creating test data for RoomChat...\n")
    
    try:
        print("1. Creating database tables...")
        await create_tables()
        print("Tables created\n")
        
        print("2. Creating test users...")
        users = await create_test_users()
        print(f"Created/found {len(users)} users\n")
        
        print("3. Creating test messages...")
        messages = await create_test_messages()
        print(f"Created {len(messages)} messages\n")
        
        print("Test data created successfully!")
        print("\nUsers:")
        for user in users:
            print(f"  - {user.username} (ID: {user.id}) - password: {PASSWORD}")
        
        print("\nRooms:")
        for room in sorted({room for room, _, _ in MESSAGES}):
            print(f"  - {room}")
        
        print("\nUseful links:")
        print("  - API docs: http://localhost:8000/docs")
        print("  - WebSocket: ws://localhost:8000/api/v1/ws/chat?token=<token>")
        
    except Exception as e:
        print(f"Error creating test data: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

if __name__ == "__main__":
    asyncio.run(main())
