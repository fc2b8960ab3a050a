"""Sample tables created in a fresh engine when ``sample_data`` is enabled."""

SAMPLE_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY,
        name VARCHAR,
        email VARCHAR,
        country VARCHAR,
        created_at DATE
    )
    """,
    """
    INSERT OR IGNORE INTO customers VALUES
        (1, 'Alice Johnson', 'alice@example.com', 'USA', '2023-01-15'),
        (2, 'Bob Smith', 'bob@example.com', 'Canada', '2023-02-20'),
        (3, 'Clara Martinez', 'clara@example.com', 'Mexico', '2023-03-10'),
        (4, 'David Lee', 'david@example.com', 'USA', '2023-04-05'),
        (5, 'Eva Brown', 'eva@example.com', 'UK', '2023-05-12'),
        (6, 'Frank Wilson', 'frank@example.com', 'Germany', '2023-06-18'),
        (7, 'Grace Kim', 'grace@example.com', 'South Korea', '2023-07-22'),
        (8, 'Henry Chen', 'henry@example.com', 'China', '2023-08-30'),
        (9, 'Iris Patel', 'iris@example.com', 'India', '2023-09-14'),
        (10, 'Jack Thompson', 'jack@example.com', 'Australia', '2023-10-25')
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY,
        name VARCHAR,
        category VARCHAR,
        price DECIMAL(10,2),
        stock INTEGER
    )
    """,
    """
    INSERT OR IGNORE INTO products VALUES
        (1, 'Laptop Pro', 'Electronics', 1299.99, 50),
        (2, 'Wireless Mouse', 'Electronics', 29.99, 200),
        (3, 'USB-C Hub', 'Electronics', 49.99, 150),
        (4, 'Standing Desk', 'Furniture', 599.00, 30),
        (5, 'Ergonomic Chair', 'Furniture', 449.00, 25),
        (6, 'Monitor 27"', 'Electronics', 349.99, 75),
        (7, 'Keyboard Mechanical', 'Electronics', 129.99, 100),
        (8, 'Webcam HD', 'Electronics', 79.99, 120),
        (9, 'Desk Lamp', 'Furniture', 39.99, 80),
        (10, 'Notebook Set', 'Office', 12.99, 300)
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY,
        customer_id INTEGER,
        product_id INTEGER,
        quantity INTEGER,
        total DECIMAL(10,2),
        status VARCHAR,
        order_date DATE
    )
    """,
    """
    INSERT OR IGNORE INTO orders VALUES
        (1, 1, 1, 1, 1299.99, 'delivered', '2024-01-05'),
        (2, 1, 2, 2, 59.98, 'delivered', '2024-01-05'),
        (3, 2, 4, 1, 599.00, 'delivered', '2024-01-10'),
        (4, 3, 6, 2, 699.98, 'shipped', '2024-01-15'),
        (5, 4, 1, 1, 1299.99, 'delivered', '2024-01-20'),
        (6, 5, 5, 1, 449.00, 'processing', '2024-01-25'),
        (7, 6, 3, 3, 149.97, 'delivered', '2024-02-01'),
        (8, 7, 7, 1, 129.99, 'shipped', '2024-02-05'),
        (9, 8, 8, 2, 159.98, 'delivered', '2024-02-10'),
        (10, 9, 10, 5, 64.95, 'delivered', '2024-02-15'),
        (11, 10, 2, 1, 29.99, 'processing', '2024-02-20'),
        (12, 1, 9, 2, 79.98, 'delivered', '2024-02-25'),
        (13, 2, 7, 1, 129.99, 'shipped', '2024-03-01'),
        (14, 3, 1, 1, 1299.99, 'processing', '2024-03-05'),
        (15, 4, 6, 1, 349.99, 'delivered', '2024-03-10'),
        (16, 5, 4, 1, 599.00, 'delivered', '2024-03-15'),
        (17, 6, 8, 1, 79.99, 'shipped', '2024-03-20'),
        (18, 7, 5, 1, 449.00, 'processing', '2024-03-25'),
        (19, 8, 3, 2, 99.98, 'delivered', '2024-03-30'),
        (20, 9, 2, 3, 89.97, 'delivered', '2024-04-01')
    """,
)
